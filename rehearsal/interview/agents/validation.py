"""
Question validation agent: scores a generated question for relevance, difficulty and clarity.
"""
from dataclasses import dataclass
from typing import Any, Dict

from ..models import InterviewConfig, QuestionSpec, QuestionValidation, TopicAnalysis
from ..prompts import InterviewPrompts
from .base import BaseAgent, clean_strings, to_score

APPROVAL_THRESHOLD = 70


@dataclass(frozen=True)
class QuestionValidationRequest:
    question: str
    question_spec: QuestionSpec
    topic_analysis: TopicAnalysis
    config: InterviewConfig


class QuestionValidationAgent(BaseAgent):
    """Validates generated questions against their spec and topic."""

    name = "ValidationAgent"
    schema_name = "question_validation"

    def system_prompt(self) -> str:
        return InterviewPrompts.question_validation_system()

    def prepare_prompt(self, request: QuestionValidationRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.question_validation_prompt(
            request.question, request.question_spec, request.topic_analysis, request.config
        )

    def build(self, data: Dict[str, Any], request: QuestionValidationRequest) -> QuestionValidation:
        scores = data.get("validation") or {}
        relevance = to_score(scores.get("topicRelevance"), 50)
        difficulty = to_score(scores.get("difficultyMatch"), 50)
        clarity = to_score(scores.get("clarity"), 50)

        overall = scores.get("overallScore")
        overall = to_score(overall) if overall is not None else round((relevance + difficulty + clarity) / 3)

        is_valid = bool(scores.get("isValid"))
        decision = data.get("decision") or ("approve" if is_valid else "revise")

        return QuestionValidation(
            is_valid=is_valid,
            topic_relevance=relevance,
            difficulty_match=difficulty,
            clarity=clarity,
            overall_score=overall,
            issues=clean_strings(data.get("issues")),
            suggestions=clean_strings(data.get("suggestions")),
            decision=decision,
            reasoning=data.get("reasoning", ""),
        )

    def fallback(self, request: QuestionValidationRequest) -> QuestionValidation:
        """Keyword-overlap heuristic against the topic name and relevance keywords."""
        question = request.question or ""
        question_lower = question.lower()
        topic = request.config.topic

        relevance = 50
        if topic.lower() in question_lower:
            relevance += 30
        matches = sum(1 for k in request.topic_analysis.relevance_keywords if k.lower() in question_lower)
        relevance += min(20, matches * 10)

        clarity = 80 if len(question) > 20 and "?" in question else 60
        difficulty = 75
        overall = round((relevance + clarity + difficulty) / 3)

        issues = []
        suggestions = []
        if relevance < 70:
            issues.append("Low topic relevance")
            suggestions.append(f"Include more specific references to {topic}")
        if len(question) < 30:
            issues.append("Question may be too brief")

        approved = overall >= APPROVAL_THRESHOLD
        return QuestionValidation(
            is_valid=approved,
            topic_relevance=relevance,
            difficulty_match=difficulty,
            clarity=clarity,
            overall_score=overall,
            issues=issues,
            suggestions=suggestions,
            decision="approve" if approved else "revise",
            reasoning="Fallback validation based on keyword matching and basic heuristics",
        )
