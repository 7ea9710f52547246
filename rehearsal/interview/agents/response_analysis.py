"""
Response analysis agent: scores one candidate answer on six dimensions.
"""
from dataclasses import dataclass
from typing import Any, Dict

from ..models import SCORE_DIMENSIONS, InterviewConfig, InterviewStyle, ResponseAnalysis
from ..prompts import InterviewPrompts
from .base import AgentOutputRejected, BaseAgent, clean_strings, to_score

HEDGING_PHRASES = ("i think", "maybe", "i guess", "not sure", "probably", "kind of", "sort of")


@dataclass(frozen=True)
class ResponseAnalysisRequest:
    question: str
    response: str
    config: InterviewConfig
    question_number: int = 1


class ResponseAnalysisAgent(BaseAgent):
    """Analyzes a single interview response."""

    name = "ResponseAnalysisAgent"
    schema_name = "response_analysis"

    def system_prompt(self) -> str:
        return InterviewPrompts.response_analysis_system()

    def prepare_prompt(self, request: ResponseAnalysisRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.response_analysis_prompt(
            request.question, request.response, request.config, request.question_number
        )

    def build(self, data: Dict[str, Any], request: ResponseAnalysisRequest) -> ResponseAnalysis:
        raw_scores = data.get("responseAnalysis")
        if not isinstance(raw_scores, dict):
            raise AgentOutputRejected("responseAnalysis missing")

        scores = {name: to_score(raw_scores.get(name)) for name in SCORE_DIMENSIONS}
        score = data.get("score")
        score = to_score(score) if score is not None else round(sum(scores.values()) / len(scores))

        return ResponseAnalysis(
            scores=scores,
            score=score,
            feedback=data.get("feedback") or InterviewPrompts.fallback_messages()["response_feedback"],
            strengths=clean_strings(data.get("strengths")),
            improvements=clean_strings(data.get("improvements")),
            key_insights=clean_strings(data.get("keyInsights")),
        )

    def fallback(self, request: ResponseAnalysisRequest) -> ResponseAnalysis:
        """Length and hedging heuristics."""
        response = request.response or ""
        length = len(response)
        lowered = response.lower()

        scores = {
            "clarity": min(95, max(60, 70 + length / 50)),
            "structure": 75 if "." in response and length > 50 else 65,
            "technical": 70 if request.config.style == InterviewStyle.TECHNICAL else 75,
            "communication": min(90, max(60, 65 + length / 40)),
            "confidence": 65 if any(p in lowered for p in HEDGING_PHRASES) else 75,
            "relevance": 75,
        }
        score = round(sum(scores.values()) / len(scores))

        self.logger.info(f"[{self.name}] Generated fallback analysis ({length} chars, score {score})")
        return ResponseAnalysis(
            scores={name: round(value) for name, value in scores.items()},
            score=score,
            feedback=InterviewPrompts.fallback_messages()["response_feedback"],
            strengths=["Shows understanding of the topic", "Provides relevant information"],
            improvements=["Add more specific examples", "Structure response more clearly"],
            key_insights=["Response demonstrates basic understanding", "Could benefit from more detailed examples"],
            fallback=True,
        )
