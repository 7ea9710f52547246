"""
Question planning agent: decides what the next question should cover.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..models import InterviewConfig, InterviewResponse, QuestionPlan, QuestionSpec, TopicAnalysis
from ..pacing import difficulty_for, max_questions
from ..prompts import InterviewPrompts
from .base import AgentOutputRejected, BaseAgent, clean_strings

REQUIRED_SPEC_FIELDS = ("category", "difficulty", "focusArea", "concepts")


@dataclass(frozen=True)
class QuestionPlanningRequest:
    topic_analysis: TopicAnalysis
    config: InterviewConfig
    previous_questions: List[str] = field(default_factory=list)
    previous_responses: List[InterviewResponse] = field(default_factory=list)
    question_number: int = 1


class QuestionPlanningAgent(BaseAgent):
    """Plans the next question's category, difficulty and focus."""

    name = "QuestionPlanningAgent"
    schema_name = "question_plan"

    def system_prompt(self) -> str:
        return InterviewPrompts.question_planning_system()

    def prepare_prompt(self, request: QuestionPlanningRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.question_planning_prompt(
            request.topic_analysis,
            request.config,
            request.previous_questions,
            request.previous_responses,
            request.question_number,
        )

    def build(self, data: Dict[str, Any], request: QuestionPlanningRequest) -> QuestionPlan:
        raw_spec = data.get("nextQuestionSpec")
        if not isinstance(raw_spec, dict):
            raise AgentOutputRejected("nextQuestionSpec missing")

        missing = [name for name in REQUIRED_SPEC_FIELDS if not raw_spec.get(name)]
        if missing:
            raise AgentOutputRejected(f"nextQuestionSpec missing fields: {', '.join(missing)}")

        spec = QuestionSpec.from_dict(raw_spec)
        spec.concepts = clean_strings(spec.concepts)
        # Never let the plan re-ask something already covered
        spec.avoid_topics = list(dict.fromkeys(clean_strings(spec.avoid_topics) + list(request.previous_questions)))

        plan = data.get("questionPlan") or {}
        config = request.config
        total = plan.get("totalQuestions") or max_questions(
            config.duration, config.experience_level, config.style
        )
        return QuestionPlan(
            next_question_spec=spec,
            total_questions=int(total),
            progression=plan.get("progression") or "easy-to-hard",
            focus_distribution=dict(plan.get("focusDistribution") or {}),
            reasoning=data.get("reasoning", ""),
        )

    def fallback(self, request: QuestionPlanningRequest) -> QuestionPlan:
        """Difficulty escalates with the question number; focus area indexed from the analysis."""
        config = request.config
        analysis = request.topic_analysis
        number = request.question_number

        focus_areas = analysis.focus_areas or [config.topic]
        focus_area = focus_areas[min(number - 1, len(focus_areas) - 1)]

        spec = QuestionSpec(
            category=config.style.value,
            difficulty=difficulty_for(number, config.experience_level),
            focus_area=focus_area,
            concepts=list(analysis.main_concepts[:2]),
            avoid_topics=list(request.previous_questions),
            question_type="theoretical" if number <= 2 else "practical",
        )
        return QuestionPlan(
            next_question_spec=spec,
            total_questions=max_questions(config.duration, config.experience_level, config.style),
            progression="easy-to-hard",
            focus_distribution={"fundamentals": 40, "practical": 40, "advanced": 20},
            reasoning="Fallback planning based on basic progression rules",
        )
