import json

import pytest

from rehearsal.errors import ConfigurationError
from rehearsal.interview.events import EventType
from rehearsal.interview.prompts import InterviewPrompts
from rehearsal.interview.question_orchestrator import QuestionOrchestrator
from rehearsal.interview.testing import (
    FOLLOW_UP_ROLE,
    GENERATION_ROLE,
    MOCK_VALIDATION_REVISE,
    PLANNING_ROLE,
    TOPIC_ROLE,
    VALIDATION_ROLE,
    FailingLLMClient,
    create_mock_llm_client,
    create_test_config,
)


def test_session_key_is_normalized():
    config = create_test_config(topic="Machine  Learning", experienceLevel="mid-level")

    assert QuestionOrchestrator.session_key(config) == "machine_learning_technical_mid-level"


def test_topic_analysis_runs_once_per_key(llm, config):
    orchestrator = QuestionOrchestrator(llm)

    for n in range(1, 4):
        orchestrator.next_question(config, [], [], n)

    assert len(llm.calls_for(TOPIC_ROLE)) == 1
    stats = orchestrator.stats()
    assert stats["topic_analyses"] == 1
    assert stats["topic_cache_hits"] == 2
    assert stats["cached_topics"] == 1


def test_fast_mode_costs_one_generation_call(llm, config):
    orchestrator = QuestionOrchestrator(llm, mode="fast")

    question = orchestrator.next_question(config, [], [], 1)

    assert "React" in question
    assert len(llm.calls_for(GENERATION_ROLE)) == 1
    assert llm.calls_for(PLANNING_ROLE) == []
    assert llm.calls_for(VALIDATION_ROLE) == []


def test_build_question_spec_escalates_and_clamps_focus(llm, config):
    orchestrator = QuestionOrchestrator(llm)
    analysis = orchestrator.topic_analysis(config)

    first = orchestrator.build_question_spec(analysis, config, [], 1)
    later = orchestrator.build_question_spec(analysis, config, ["a", "b"], 9)

    assert (first.difficulty, first.question_type, first.focus_area) == ("easy", "theoretical", "Component Design")
    assert (later.difficulty, later.question_type, later.focus_area) == ("hard", "practical", "Performance Optimization")
    assert later.avoid_topics == ["a", "b"]


def test_generation_failure_still_returns_a_question(config):
    llm = create_mock_llm_client(generation=RuntimeError("quota exceeded"))
    orchestrator = QuestionOrchestrator(llm)

    question = orchestrator.next_question(config, [], [], 1)

    assert question in InterviewPrompts.question_bank("React")["technical"]["easy"]
    assert orchestrator.stats()["fallback_questions"] == 1


def test_provider_down_everywhere_still_returns_questions(config):
    orchestrator = QuestionOrchestrator(FailingLLMClient())

    questions = [orchestrator.next_question(config, [], [], n) for n in range(1, 4)]

    assert all(q.strip() for q in questions)


def test_pipeline_crash_uses_indexed_fallback(llm, config, event_bus, recorded_events, monkeypatch):
    orchestrator = QuestionOrchestrator(llm, event_bus=event_bus)

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator, "_fast_question", explode)

    question = orchestrator.next_question(config, [], [], 1, session_id="s-1")

    assert question == InterviewPrompts.indexed_fallback_questions("React")["technical"][0]
    errors = [e for e in recorded_events if e.event_type == EventType.ERROR_OCCURRED]
    assert errors[0].session_id == "s-1"
    assert errors[0].data["component"] == "question_orchestrator"


def test_fallback_question_past_the_list_is_synthesized(llm, config):
    orchestrator = QuestionOrchestrator(llm)
    orchestrator.topic_analysis(config)

    sixth = orchestrator.fallback_question(config, 6)
    seventh = orchestrator.fallback_question(config, 7)

    assert sixth.startswith("Question 6:")
    assert "Component Design" in sixth
    assert "State Management" in seventh
    assert sixth != seventh


def test_fallback_question_unknown_topic_without_analysis(llm):
    config = create_test_config(topic="Rust")
    orchestrator = QuestionOrchestrator(llm)

    assert orchestrator.fallback_question(config, 1) == "What are the key concepts and best practices in Rust?"
    assert "Rust" in orchestrator.fallback_question(config, 8)


def test_validated_mode_plans_generates_and_validates(llm, config):
    orchestrator = QuestionOrchestrator(llm, mode="validated")

    question = orchestrator.next_question(config, ["Earlier question?"], [], 2)

    assert "React" in question
    assert len(llm.calls_for(PLANNING_ROLE)) == 1
    assert len(llm.calls_for(GENERATION_ROLE)) == 1
    assert len(llm.calls_for(VALIDATION_ROLE)) == 1


def test_validated_mode_regenerates_on_revise(config):
    llm = create_mock_llm_client(validation=json.dumps(MOCK_VALIDATION_REVISE))
    orchestrator = QuestionOrchestrator(llm, mode="validated", max_revisions=2)

    question = orchestrator.next_question(config, [], [], 1)

    assert question.endswith("scenario number 3?")
    assert len(llm.calls_for(GENERATION_ROLE)) == 3
    assert len(llm.calls_for(VALIDATION_ROLE)) == 3
    assert orchestrator.stats()["revisions"] == 2


def test_rejected_questions_are_avoided_in_later_attempts(config):
    llm = create_mock_llm_client(validation=json.dumps(MOCK_VALIDATION_REVISE))
    orchestrator = QuestionOrchestrator(llm, mode="validated", max_revisions=1)

    orchestrator.next_question(config, [], [], 1)

    second_prompt = llm.calls_for(GENERATION_ROLE)[1]["messages"][0]["content"]
    assert "scenario number 1?" in second_prompt


def test_follow_up_is_cleaned_plain_text(config):
    llm = create_mock_llm_client(follow_up='"Can you walk me through the re-render  that causes?"')
    orchestrator = QuestionOrchestrator(llm)

    follow_up = orchestrator.follow_up("What is useMemo?", "It caches values.", config)

    assert follow_up == "Can you walk me through the re-render that causes?"
    assert len(llm.calls_for(FOLLOW_UP_ROLE)) == 1
    assert orchestrator.stats()["follow_ups"] == 1


def test_follow_up_failure_uses_fixed_prompt(config):
    orchestrator = QuestionOrchestrator(FailingLLMClient())

    follow_up = orchestrator.follow_up("What is useMemo?", "It caches values.", config)

    assert follow_up == InterviewPrompts.fallback_messages()["follow_up"]


def test_clear_session_forces_new_analysis(llm, config):
    orchestrator = QuestionOrchestrator(llm)
    orchestrator.topic_analysis(config)

    orchestrator.clear_session(config)
    orchestrator.topic_analysis(config)

    assert len(llm.calls_for(TOPIC_ROLE)) == 2


def test_unknown_mode_is_rejected(llm):
    with pytest.raises(ConfigurationError):
        QuestionOrchestrator(llm, mode="thorough")
