import json
import random

import pytest

from rehearsal.interview.agents import (
    OverallAnalysisAgent,
    OverallAnalysisRequest,
    QuestionGenerationAgent,
    QuestionGenerationRequest,
    QuestionPlanningAgent,
    QuestionPlanningRequest,
    QuestionValidationAgent,
    QuestionValidationRequest,
    ResponseAnalysisAgent,
    ResponseAnalysisRequest,
    TopicAnalysisAgent,
    TopicAnalysisRequest,
    score_trends,
)
from rehearsal.interview.events import EventType
from rehearsal.interview.models import QuestionSpec, ResponseAnalysis, TopicAnalysis, performance_level_for
from rehearsal.interview.prompts import JSON_ONLY_INSTRUCTION, InterviewPrompts
from rehearsal.interview.testing import (
    MOCK_TOPIC_ANALYSIS,
    FailingLLMClient,
    MockLLMClient,
    create_mock_llm_client,
    create_test_config,
    create_test_responses,
)


@pytest.fixture
def analysis():
    return TopicAnalysis.from_dict(MOCK_TOPIC_ANALYSIS)


def easy_spec(**overrides):
    data = dict(category="technical", difficulty="easy", focus_area="Component Design",
                concepts=["Components"], avoid_topics=[], question_type="theoretical")
    data.update(overrides)
    return QuestionSpec(**data)


def response_analysis(score, strengths=(), improvements=()):
    return ResponseAnalysis(
        scores={"clarity": score, "structure": score, "technical": score,
                "communication": score, "confidence": score, "relevance": score},
        score=score,
        feedback="ok",
        strengths=list(strengths),
        improvements=list(improvements),
    )


class TestTopicAnalysisAgent:

    def test_model_output_is_built(self, llm, config):
        result = TopicAnalysisAgent(llm).execute(TopicAnalysisRequest(config))

        assert result.success
        assert result.data.focus_areas == MOCK_TOPIC_ANALYSIS["focusAreas"]
        assert result.metadata["parse_method"] == "direct"
        assert llm.request_history[0]["system_prompt"].endswith(JSON_ONLY_INSTRUCTION)

    def test_provider_failure_leaves_data_empty(self, config):
        client = FailingLLMClient()
        agent = TopicAnalysisAgent(client)

        result = agent.execute(TopicAnalysisRequest(config))
        assert not result.success
        assert result.data is None
        assert "provider unavailable" in result.error

        result = agent.execute_with_fallback(TopicAnalysisRequest(config))
        assert result.used_fallback
        assert "Component Design" in result.data.focus_areas
        assert client.call_count == 2

    def test_empty_required_lists_are_rejected(self, config, event_bus, recorded_events):
        payload = dict(MOCK_TOPIC_ANALYSIS, focusAreas=[], relevanceKeywords=[])
        agent = TopicAnalysisAgent(MockLLMClient([json.dumps(payload)]), event_bus)

        result = agent.execute(TopicAnalysisRequest(config), {"session_id": "s-1"})

        assert not result.success
        assert result.used_fallback
        assert result.data.focus_areas
        assert "focus_areas" in result.error
        fallbacks = [e for e in recorded_events if e.event_type == EventType.AGENT_FALLBACK]
        assert fallbacks[0].session_id == "s-1"
        assert fallbacks[0].data["agent"] == "TopicAnalysisAgent"

    def test_fallback_uses_generic_analysis_for_unknown_topics(self):
        config = create_test_config(topic="Underwater basket weaving", experienceLevel="senior")
        data = TopicAnalysisAgent(FailingLLMClient()).fallback(TopicAnalysisRequest(config))

        assert data.focus_areas == ["Core Concepts", "Practical Application", "Industry Standards"]
        assert data.complexity == "high"
        assert data.question_categories == ["technical", "fundamentals", "practical"]

    def test_fallback_complexity_for_freshers(self):
        config = create_test_config(topic="Backend APIs", experienceLevel="fresher")
        data = TopicAnalysisAgent(FailingLLMClient()).fallback(TopicAnalysisRequest(config))

        assert data.complexity == "low"
        assert "API Design" in data.focus_areas


class TestQuestionGenerationAgent:

    def test_generated_question_is_checked_for_relevance(self, llm, config, analysis):
        agent = QuestionGenerationAgent(llm)
        result = agent.execute(QuestionGenerationRequest(easy_spec(), analysis, config))

        assert result.success
        assert result.data.text.startswith("How would you use React component state")
        assert result.data.topic_relevance == "high"
        assert not result.data.fallback

    def test_short_question_is_rejected(self, config, analysis):
        client = MockLLMClient([json.dumps({"question": "Why?"})])
        result = QuestionGenerationAgent(client).execute(QuestionGenerationRequest(easy_spec(), analysis, config))

        assert not result.success
        assert result.data.fallback
        assert "too short" in result.error

    def test_fallback_skips_questions_already_asked(self, config, analysis):
        easy = InterviewPrompts.question_bank("React")["technical"]["easy"]
        agent = QuestionGenerationAgent(FailingLLMClient(), rng=random.Random(7))

        question = agent.fallback(QuestionGenerationRequest(easy_spec(), analysis, config, easy[:2]))

        assert question.text == easy[2]
        assert question.fallback

    def test_fallback_skips_avoided_topics(self, config, analysis):
        easy = InterviewPrompts.question_bank("React")["technical"]["easy"]
        agent = QuestionGenerationAgent(FailingLLMClient(), rng=random.Random(7))

        question = agent.fallback(QuestionGenerationRequest(easy_spec(avoid_topics=[easy[0], easy[1]]),
                                                            analysis, config))

        assert question.text == easy[2]

    def test_fallback_synthesizes_when_bank_is_exhausted(self, config, analysis):
        easy = InterviewPrompts.question_bank("React")["technical"]["easy"]
        agent = QuestionGenerationAgent(FailingLLMClient())

        question = agent.fallback(QuestionGenerationRequest(easy_spec(), analysis, config, list(easy)))

        assert question.text.startswith("Question 4:")
        assert "Component Design" in question.text
        assert question.text not in easy


class TestQuestionValidationAgent:

    def test_model_decision_is_used(self, config, analysis):
        client = MockLLMClient([json.dumps({
            "validation": {"isValid": False, "topicRelevance": 40, "difficultyMatch": 60, "clarity": 70},
            "issues": ["Too generic"],
        })])
        agent = QuestionValidationAgent(client)

        result = agent.execute(QuestionValidationRequest("Tell me about React?", easy_spec(), analysis, config))

        assert result.success
        assert result.data.decision == "revise"
        assert result.data.overall_score == 57
        assert result.data.issues == ["Too generic"]

    def test_fallback_approves_relevant_question(self, config, analysis):
        agent = QuestionValidationAgent(FailingLLMClient())
        request = QuestionValidationRequest("What is React and how do component props work?",
                                            easy_spec(), analysis, config)

        validation = agent.fallback(request)

        assert validation.topic_relevance == 100
        assert validation.clarity == 80
        assert validation.overall_score == 85
        assert validation.decision == "approve"
        assert validation.issues == []

    def test_fallback_flags_vague_question(self, config, analysis):
        agent = QuestionValidationAgent(FailingLLMClient())
        validation = agent.fallback(QuestionValidationRequest("Tell me about yourself", easy_spec(),
                                                              analysis, config))

        assert validation.decision == "revise"
        assert not validation.is_valid
        assert validation.issues == ["Low topic relevance", "Question may be too brief"]
        assert validation.suggestions == ["Include more specific references to React"]


class TestQuestionPlanningAgent:

    def test_plan_avoids_previous_questions(self, llm, config, analysis):
        previous = ["What is JSX?"]
        result = QuestionPlanningAgent(llm).execute(
            QuestionPlanningRequest(analysis, config, previous, [], question_number=2)
        )

        assert result.success
        spec = result.data.next_question_spec
        assert spec.focus_area == "State Management"
        assert spec.avoid_topics == previous
        assert result.data.total_questions == 5

    def test_missing_spec_uses_progression_fallback(self, config, analysis):
        client = MockLLMClient([json.dumps({"questionPlan": {"totalQuestions": 5}})])
        result = QuestionPlanningAgent(client).execute(
            QuestionPlanningRequest(analysis, config, ["q1", "q2"], [], question_number=3)
        )

        assert result.used_fallback
        spec = result.data.next_question_spec
        assert spec.difficulty == "hard"
        assert spec.focus_area == "Performance Optimization"
        assert spec.question_type == "practical"
        assert result.data.total_questions == 5
        assert result.data.focus_distribution == {"fundamentals": 40, "practical": 40, "advanced": 20}


class TestResponseAnalysisAgent:

    def test_score_defaults_to_mean_of_dimensions(self, config):
        payload = {
            "responseAnalysis": {"clarity": 80, "structure": 70, "technical": 60,
                                 "communication": 90, "confidence": 70, "relevance": 80},
            "feedback": "Solid.",
        }
        result = ResponseAnalysisAgent(MockLLMClient([json.dumps(payload)])).execute(
            ResponseAnalysisRequest("Q?", "A.", config)
        )

        assert result.success
        assert result.data.score == 75
        assert result.data.feedback == "Solid."

    def test_missing_scores_fall_back(self, config):
        result = ResponseAnalysisAgent(MockLLMClient(["{}"])).execute(
            ResponseAnalysisRequest("Q?", "A short answer.", config)
        )

        assert result.used_fallback
        assert result.data.fallback

    def test_fallback_penalizes_hedging(self, config):
        agent = ResponseAnalysisAgent(FailingLLMClient())
        hedged = agent.fallback(ResponseAnalysisRequest("Q?", "I think maybe you could use a hook.", config))
        direct = agent.fallback(ResponseAnalysisRequest("Q?", "You use a hook to share the state here.", config))

        assert hedged.scores["confidence"] == 65
        assert direct.scores["confidence"] == 75
        assert hedged.scores["technical"] == 70
        assert all(isinstance(v, int) for v in hedged.scores.values())

    def test_fallback_technical_score_for_non_technical_styles(self):
        config = create_test_config(style="behavioral")
        analysis = ResponseAnalysisAgent(FailingLLMClient()).fallback(
            ResponseAnalysisRequest("Q?", "An answer.", config)
        )

        assert analysis.scores["technical"] == 75


class TestOverallAnalysisAgent:

    def test_level_is_derived_from_score(self, llm, config):
        responses = create_test_responses(2)
        analyses = [response_analysis(78), response_analysis(78)]
        result = OverallAnalysisAgent(llm).execute(OverallAnalysisRequest(responses, analyses, config))

        assert result.success
        assert result.data.overall_score == 78
        assert result.data.performance_level == "good"
        assert result.data.trends["improvement"] == "improving"

    def test_out_of_range_score_is_clamped_and_level_rederived(self, config):
        llm = create_mock_llm_client(overall=json.dumps({"overallScore": 150, "performanceLevel": "poor"}))
        responses = create_test_responses(2)
        analyses = [response_analysis(78), response_analysis(78)]

        result = OverallAnalysisAgent(llm).execute(OverallAnalysisRequest(responses, analyses, config))

        assert result.success
        assert result.data.overall_score == 100
        assert result.data.performance_level == "excellent"

    def test_negative_score_is_clamped_to_zero(self, config):
        llm = create_mock_llm_client(overall=json.dumps({"overallScore": -20, "performanceLevel": "excellent"}))
        responses = create_test_responses(1)

        result = OverallAnalysisAgent(llm).execute(
            OverallAnalysisRequest(responses, [response_analysis(50)], config)
        )

        assert result.data.overall_score == 0
        assert result.data.performance_level == "needs_improvement"

    def test_fallback_aggregates_scores(self, config):
        responses = create_test_responses(3)
        analyses = [
            response_analysis(60, ["Clear"], ["Depth"]),
            response_analysis(70, ["Clear", "Examples"], ["Depth", "Pace"]),
            response_analysis(80, ["Structure", "Energy"], ["Detail"]),
        ]

        overall = OverallAnalysisAgent(FailingLLMClient()).fallback(
            OverallAnalysisRequest(responses, analyses, config)
        )

        assert overall.overall_score == 70
        assert overall.performance_level == "good"
        assert overall.trends == {"improvement": "improving", "consistency": "medium", "adaptability": "medium"}
        assert overall.strengths == ["Clear", "Examples", "Structure"]
        assert overall.improvements == ["Depth", "Pace", "Detail"]
        assert overall.dimension_scores["clarity"] == 70
        assert any("React" in step for step in overall.next_steps)

    def test_fallback_with_no_responses(self, config):
        overall = OverallAnalysisAgent(FailingLLMClient()).fallback(OverallAnalysisRequest([], [], config))

        assert overall.overall_score == 0
        assert overall.performance_level == "needs_improvement"
        assert overall.strengths
        assert overall.dimension_scores == {}


@pytest.mark.parametrize("scores,expected", [
    ([75], {"improvement": "consistent", "consistency": "medium", "adaptability": "medium"}),
    ([80, 80, 80], {"improvement": "consistent", "consistency": "high", "adaptability": "high"}),
    ([90, 70, 50], {"improvement": "declining", "consistency": "low", "adaptability": "low"}),
])
def test_score_trends(scores, expected):
    assert score_trends(scores) == expected


@pytest.mark.parametrize("score,level", [
    (150, "excellent"),
    (85, "excellent"),
    (84.9, "good"),
    (70, "good"),
    (69.9, "fair"),
    (60, "fair"),
    (59.9, "needs_improvement"),
    (-5, "needs_improvement"),
])
def test_performance_level_bands(score, level):
    assert performance_level_for(score) == level
