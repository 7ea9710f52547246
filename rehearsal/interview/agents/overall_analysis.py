"""
Overall analysis agent: synthesizes per-response analyses into an interview-wide verdict.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np

from ..models import (
    SCORE_DIMENSIONS,
    InterviewConfig,
    InterviewResponse,
    OverallAnalysis,
    ResponseAnalysis,
    performance_level_for,
)
from ..prompts import InterviewPrompts
from .base import BaseAgent, clean_strings, to_score

DEFAULT_STRENGTHS = [
    "Shows understanding of core concepts",
    "Demonstrates relevant experience",
    "Communicates ideas clearly",
]
DEFAULT_IMPROVEMENTS = [
    "Provide more specific examples",
    "Structure responses more clearly",
    "Practice confident delivery",
]

# Score-per-question slope and spread thresholds for trend labels
IMPROVING_SLOPE = 2.0
HIGH_CONSISTENCY_STD = 5.0
MEDIUM_CONSISTENCY_STD = 12.0


@dataclass(frozen=True)
class OverallAnalysisRequest:
    responses: List[InterviewResponse]
    analyses: List[ResponseAnalysis]
    config: InterviewConfig
    session_metadata: Dict[str, Any] = field(default_factory=dict)


def score_trends(scores: Sequence[float]) -> Dict[str, str]:
    """
    Label the score series.

    improvement: least-squares slope over question order
    consistency: standard deviation of the scores
    adaptability: weakest single answer
    """
    if len(scores) < 2:
        return {"improvement": "consistent", "consistency": "medium", "adaptability": "medium"}

    series = np.asarray(scores, dtype=float)
    slope = np.polyfit(np.arange(len(series)), series, 1)[0]
    spread = float(np.std(series))
    weakest = float(series.min())

    if slope > IMPROVING_SLOPE:
        improvement = "improving"
    elif slope < -IMPROVING_SLOPE:
        improvement = "declining"
    else:
        improvement = "consistent"

    if spread < HIGH_CONSISTENCY_STD:
        consistency = "high"
    elif spread < MEDIUM_CONSISTENCY_STD:
        consistency = "medium"
    else:
        consistency = "low"

    if weakest >= 70:
        adaptability = "high"
    elif weakest >= 55:
        adaptability = "medium"
    else:
        adaptability = "low"

    return {"improvement": improvement, "consistency": consistency, "adaptability": adaptability}


def review_data(request: "OverallAnalysisRequest") -> List[Dict[str, Any]]:
    """Per-question records embedded in the synthesis prompt."""
    records = []
    for index, (response, analysis) in enumerate(zip(request.responses, request.analyses), start=1):
        records.append({
            "questionNumber": index,
            "question": response.question_text,
            "response": response.response_text,
            "score": analysis.score,
            "scores": dict(analysis.scores),
            "strengths": list(analysis.strengths),
            "improvements": list(analysis.improvements),
        })
    return records


class OverallAnalysisAgent(BaseAgent):
    """Produces the interview-wide score, trends and recommendations."""

    name = "OverallAnalysisAgent"
    schema_name = "overall_analysis"

    def system_prompt(self) -> str:
        return InterviewPrompts.overall_analysis_system()

    def prepare_prompt(self, request: OverallAnalysisRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.overall_analysis_prompt(
            review_data(request), request.config, request.session_metadata
        )

    def build(self, data: Dict[str, Any], request: OverallAnalysisRequest) -> OverallAnalysis:
        dimensions = {name: to_score(value) for name, value in (data.get("responseAnalysis") or {}).items()
                      if isinstance(value, (int, float))}

        overall = data.get("overallScore")
        if overall is not None:
            overall_score = to_score(overall)
        elif dimensions:
            overall_score = round(sum(dimensions.values()) / len(dimensions))
        else:
            overall_score = 70

        # Model-supplied levels are ignored; the band always follows the score
        level = performance_level_for(overall_score)
        summary = data.get("executiveSummary") or (
            f"The candidate demonstrated {level} performance with an overall score of {overall_score}%. "
            f"They show understanding of the core concepts but could benefit from continued practice "
            f"and improvement."
        )

        return OverallAnalysis(
            overall_score=overall_score,
            performance_level=level,
            trends=dict(data.get("trends") or {}),
            strengths=clean_strings(data.get("strengths")),
            improvements=clean_strings(data.get("improvements")),
            recommendations=clean_strings(data.get("recommendations")),
            next_steps=clean_strings(data.get("nextSteps")),
            executive_summary=summary,
            dimension_scores=dimensions,
        )

    def fallback(self, request: OverallAnalysisRequest) -> OverallAnalysis:
        """Mean of per-response scores with pooled, deduplicated strengths and improvements."""
        analyses = request.analyses
        topic = request.config.topic

        if analyses:
            overall_score = round(float(np.mean([a.score for a in analyses])))
            dimensions = {
                name: round(float(np.mean([a.scores.get(name, 70) for a in analyses])))
                for name in SCORE_DIMENSIONS
            }
        else:
            overall_score = 0
            dimensions = {}

        level = performance_level_for(overall_score)
        strengths = list(dict.fromkeys(s for a in analyses for s in a.strengths))[:3]
        improvements = list(dict.fromkeys(i for a in analyses for i in a.improvements))[:3]

        self.logger.info(f"[{self.name}] Fallback analysis generated with overall score: {overall_score}")
        return OverallAnalysis(
            overall_score=overall_score,
            performance_level=level,
            trends=score_trends([a.score for a in analyses]),
            strengths=strengths or list(DEFAULT_STRENGTHS),
            improvements=improvements or list(DEFAULT_IMPROVEMENTS),
            recommendations=[
                "Practice structuring responses using frameworks like STAR method",
                "Prepare specific examples for common question types",
                "Work on confident delivery and clear communication",
                f"Focus on improving {topic} knowledge depth",
            ],
            next_steps=[
                "Practice mock interviews focusing on response structure",
                "Prepare a portfolio of specific examples for different scenarios",
                "Work on confident delivery and clear articulation",
                f"Deepen knowledge in {topic} through additional study and practice",
            ],
            executive_summary=(
                f"The candidate demonstrated {level} performance with an overall score of {overall_score}%. "
                f"They show solid understanding of {topic} concepts but could benefit from more structured "
                f"responses and specific examples. The analysis covers {len(analyses)} responses."
            ),
            dimension_scores=dimensions,
            fallback=True,
        )
