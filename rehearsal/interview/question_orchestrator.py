"""
Question-generation orchestrator.

Composes the topic analysis, planning, generation and validation agents into a
single ``next_question`` call that always returns a non-empty question.

Two modes:
- fast (default): the question spec is derived directly from the cached topic
  analysis, so each question costs one generation call.
- validated: Plan -> Generate -> Validate, regenerating on reject/revise up to
  ``max_revisions`` times. Slower, higher quality.
"""
import logging
import random
import re
import threading
from typing import Any, Dict, List, Optional, Sequence

from ..config import MAX_QUESTION_REVISIONS, QUESTION_MODE, VALID_QUESTION_MODES
from ..errors import ConfigurationError
from .agents import (
    QuestionGenerationAgent,
    QuestionGenerationRequest,
    QuestionPlanningAgent,
    QuestionPlanningRequest,
    QuestionValidationAgent,
    QuestionValidationRequest,
    TopicAnalysisAgent,
    TopicAnalysisRequest,
)
from .events import ErrorOccurredEvent, InterviewEventBus
from .models import GeneratedQuestion, InterviewConfig, InterviewResponse, QuestionSpec, TopicAnalysis
from .pacing import difficulty_for, question_type_for
from .prompts import InterviewPrompts, PromptFormatter

logger = logging.getLogger("question_orchestrator")

FOLLOW_UP_INSTRUCTION = "Generate an appropriate follow-up question based on the context provided."


class QuestionOrchestrator:
    """Produces interview questions, caching one topic analysis per session key."""

    def __init__(self,
                 llm_client,
                 mode: str = QUESTION_MODE,
                 event_bus: Optional[InterviewEventBus] = None,
                 rng: Optional[random.Random] = None,
                 max_revisions: int = MAX_QUESTION_REVISIONS):
        if mode not in VALID_QUESTION_MODES:
            raise ConfigurationError(f"Unknown question mode '{mode}', expected one of {VALID_QUESTION_MODES}")

        self.llm_client = llm_client
        self.mode = mode
        self.event_bus = event_bus
        self.max_revisions = max_revisions

        self.topic_agent = TopicAnalysisAgent(llm_client, event_bus)
        self.generation_agent = QuestionGenerationAgent(llm_client, event_bus, rng=rng)
        self.planning_agent = QuestionPlanningAgent(llm_client, event_bus)
        self.validation_agent = QuestionValidationAgent(llm_client, event_bus)

        self._topic_cache: Dict[str, TopicAnalysis] = {}
        self._lock = threading.Lock()
        self._stats = {
            "questions_generated": 0,
            "fallback_questions": 0,
            "topic_analyses": 0,
            "topic_cache_hits": 0,
            "revisions": 0,
            "follow_ups": 0,
        }

        logger.info(f"Question orchestrator initialized (mode: {mode})")

    @staticmethod
    def session_key(config: InterviewConfig) -> str:
        """Canonical topic_style_level key, lower-cased with whitespace as underscores."""
        raw = f"{config.topic}_{config.style.value}_{config.experience_level.value}"
        return re.sub(r"\s+", "_", raw.strip()).lower()

    def topic_analysis(self, config: InterviewConfig, session_id: Optional[str] = None) -> TopicAnalysis:
        """Cached topic analysis for the config, computed at most once per key."""
        key = self.session_key(config)
        with self._lock:
            cached = self._topic_cache.get(key)
            if cached is not None:
                self._stats["topic_cache_hits"] += 1
                return cached

        logger.info(f"Analyzing topic for session key: {key}")
        result = self.topic_agent.execute_with_fallback(TopicAnalysisRequest(config), {"session_id": session_id})

        with self._lock:
            # Another thread may have finished first; keep whichever landed first
            analysis = self._topic_cache.setdefault(key, result.data)
            self._stats["topic_analyses"] += 1
        return analysis

    def build_question_spec(self, topic_analysis: TopicAnalysis, config: InterviewConfig,
                            previous_questions: Sequence[str], question_number: int) -> QuestionSpec:
        """Direct spec for the fast path: index into the analysis, clamped to its length."""
        focus_areas = topic_analysis.focus_areas or [config.topic]
        focus_area = focus_areas[min(max(question_number - 1, 0), len(focus_areas) - 1)]

        return QuestionSpec(
            category=config.style.value,
            difficulty=difficulty_for(question_number, config.experience_level),
            focus_area=focus_area,
            concepts=list(topic_analysis.main_concepts[:2]),
            avoid_topics=list(previous_questions),
            question_type=question_type_for(question_number, config.style),
        )

    def next_question(self,
                      config: InterviewConfig,
                      previous_questions: Sequence[str],
                      previous_responses: Sequence[InterviewResponse],
                      question_number: int,
                      session_id: Optional[str] = None) -> str:
        """
        Generate the question for ``question_number`` (1-based).

        Never raises and never returns an empty string: any failure in the
        pipeline degrades to the indexed fallback list.
        """
        previous_questions = list(previous_questions)
        context = {"session_id": session_id, "question_number": question_number}

        try:
            analysis = self.topic_analysis(config, session_id)
            if self.mode == "validated":
                question = self._validated_question(analysis, config, previous_questions,
                                                    list(previous_responses), question_number, context)
            else:
                question = self._fast_question(analysis, config, previous_questions, question_number, context)
        except Exception as e:
            logger.error(f"Question pipeline failed for question {question_number}: {e}")
            if self.event_bus:
                self.event_bus.emit(ErrorOccurredEvent(session_id, type(e).__name__, str(e), "question_orchestrator"))
            return self._count(self.fallback_question(config, question_number), fallback=True)

        text = question.text.strip()
        if not text:
            logger.warning(f"Empty question text for question {question_number}, using fallback list")
            return self._count(self.fallback_question(config, question_number), fallback=True)

        logger.info(f"Question {question_number} ready ({question.difficulty}, fallback={question.fallback})")
        return self._count(text, fallback=question.fallback)

    def fallback_question(self, config: InterviewConfig, question_number: int) -> str:
        """
        Orchestrator-level fallback indexed by question number.

        Past the end of the style's list a generic question is synthesized from
        the topic and a cycled focus area, so questions never repeat.
        """
        questions = InterviewPrompts.indexed_fallback_questions(config.topic)
        style_questions = questions.get(config.style.value, questions["technical"])
        index = max(question_number, 1) - 1
        if index < len(style_questions):
            return style_questions[index]

        with self._lock:
            cached = self._topic_cache.get(self.session_key(config))
        focus_areas = (cached.focus_areas if cached else None) or [config.topic]
        focus_area = focus_areas[(index - len(style_questions)) % len(focus_areas)]
        return InterviewPrompts.generic_question(config.topic, focus_area, question_number)

    def follow_up(self, question: str, answer: str, config: InterviewConfig) -> str:
        """Plain-text follow-up probing the candidate's last answer."""
        with self._lock:
            self._stats["follow_ups"] += 1
        try:
            raw = self.llm_client.call(
                [{"role": "user", "content": FOLLOW_UP_INSTRUCTION}],
                InterviewPrompts.follow_up_system(question, answer, config),
            )
            text = PromptFormatter.clean_plain_text(raw or "")
            if text:
                return text
            logger.warning("Empty follow-up from model, using fallback")
        except Exception as e:
            logger.warning(f"Follow-up generation failed: {e}")
        return InterviewPrompts.fallback_messages()["follow_up"]

    def clear_session(self, config: InterviewConfig) -> None:
        """Drop the cached topic analysis for this config's session key."""
        with self._lock:
            self._topic_cache.pop(self.session_key(config), None)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            snapshot = dict(self._stats)
            snapshot["cached_topics"] = len(self._topic_cache)
        snapshot["mode"] = self.mode
        return snapshot

    def _fast_question(self, analysis: TopicAnalysis, config: InterviewConfig,
                       previous_questions: List[str], question_number: int,
                       context: Dict[str, Any]) -> GeneratedQuestion:
        spec = self.build_question_spec(analysis, config, previous_questions, question_number)
        result = self.generation_agent.execute_with_fallback(
            QuestionGenerationRequest(spec, analysis, config, previous_questions), context
        )
        return result.data

    def _validated_question(self, analysis: TopicAnalysis, config: InterviewConfig,
                            previous_questions: List[str], previous_responses: List[InterviewResponse],
                            question_number: int, context: Dict[str, Any]) -> GeneratedQuestion:
        plan = self.planning_agent.execute_with_fallback(
            QuestionPlanningRequest(analysis, config, previous_questions, previous_responses, question_number),
            context,
        ).data
        spec = plan.next_question_spec

        question = None
        for attempt in range(self.max_revisions + 1):
            question = self.generation_agent.execute_with_fallback(
                QuestionGenerationRequest(spec, analysis, config, previous_questions), context
            ).data
            validation = self.validation_agent.execute_with_fallback(
                QuestionValidationRequest(question.text, spec, analysis, config), context
            ).data

            if validation.decision == "approve":
                logger.debug(f"Question {question_number} approved (score {validation.overall_score})")
                return question

            logger.info(f"Question {question_number} attempt {attempt + 1} got '{validation.decision}': "
                        f"{validation.issues}")
            if attempt < self.max_revisions:
                with self._lock:
                    self._stats["revisions"] += 1
                spec = QuestionSpec(
                    category=spec.category,
                    difficulty=spec.difficulty,
                    focus_area=spec.focus_area,
                    concepts=list(spec.concepts),
                    avoid_topics=list(spec.avoid_topics) + [question.text],
                    question_type=spec.question_type,
                )

        logger.warning(f"Question {question_number} not approved after {self.max_revisions} revisions, "
                       f"keeping last attempt")
        return question

    def _count(self, text: str, fallback: bool) -> str:
        with self._lock:
            self._stats["questions_generated"] += 1
            if fallback:
                self._stats["fallback_questions"] += 1
        return text
