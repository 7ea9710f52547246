"""
Question generation agent: writes one interview question from a QuestionSpec.
"""
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...config import MIN_QUESTION_LENGTH
from ..models import GeneratedQuestion, InterviewConfig, QuestionSpec, TopicAnalysis
from ..prompts import InterviewPrompts
from .base import AgentOutputRejected, BaseAgent, clean_strings


@dataclass(frozen=True)
class QuestionGenerationRequest:
    question_spec: QuestionSpec
    topic_analysis: TopicAnalysis
    config: InterviewConfig
    previous_questions: List[str] = field(default_factory=list)


class QuestionGenerationAgent(BaseAgent):
    """Generates a single question matching a spec, topic analysis and config."""

    name = "QuestionGenerationAgent"
    schema_name = "question_generation"

    def __init__(self, llm_client, event_bus=None, rng: Optional[random.Random] = None):
        super().__init__(llm_client, event_bus)
        self.rng = rng or random.Random()

    def system_prompt(self) -> str:
        return InterviewPrompts.question_generation_system()

    def prepare_prompt(self, request: QuestionGenerationRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.question_generation_prompt(
            request.question_spec, request.topic_analysis, request.config
        )

    def build(self, data: Dict[str, Any], request: QuestionGenerationRequest) -> GeneratedQuestion:
        text = data.get("question")
        if not isinstance(text, str):
            raise AgentOutputRejected("question text missing")
        text = " ".join(text.split())
        if len(text) < MIN_QUESTION_LENGTH:
            raise AgentOutputRejected(f"question too short ({len(text)} chars)")

        spec = request.question_spec
        question_lower = text.lower()
        keywords = request.topic_analysis.relevance_keywords
        relevant = any(k.lower() in question_lower for k in keywords)
        if keywords and not relevant:
            self.logger.warning(f"[{self.name}] Generated question may not be topic-relevant")

        metadata = data.get("metadata") or {}
        return GeneratedQuestion(
            text=text,
            difficulty=metadata.get("difficulty") or spec.difficulty,
            focus_area=metadata.get("focusArea") or spec.focus_area,
            concepts=clean_strings(metadata.get("concepts")) or list(spec.concepts),
            question_type=metadata.get("questionType") or spec.question_type,
            topic_relevance="high" if relevant else "medium",
            reasoning=data.get("reasoning", ""),
        )

    def fallback(self, request: QuestionGenerationRequest) -> GeneratedQuestion:
        """Random canned question for the style and difficulty, skipping any already asked."""
        config = request.config
        spec = request.question_spec

        bank = InterviewPrompts.question_bank(config.topic)
        by_difficulty = bank.get(config.style.value, bank["technical"])
        candidates = by_difficulty.get(spec.difficulty, by_difficulty["medium"])

        asked = set(request.previous_questions) | set(spec.avoid_topics)
        remaining = [q for q in candidates if q not in asked]
        if remaining:
            text = self.rng.choice(remaining)
        else:
            question_number = len(request.previous_questions) + 1
            text = InterviewPrompts.generic_question(config.topic, spec.focus_area or config.topic,
                                                     question_number)

        self.logger.info(f"[{self.name}] Generated fallback question: \"{text}\"")
        return GeneratedQuestion(
            text=text,
            difficulty=spec.difficulty,
            focus_area=spec.focus_area,
            concepts=list(spec.concepts),
            question_type=spec.question_type,
            topic_relevance="medium",
            fallback=True,
            reasoning="Fallback question",
        )
