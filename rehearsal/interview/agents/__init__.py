"""
Specialized agents. Each maps one structured request to one structured output
through a single model call and the response normalizer.
"""
from .base import AgentOutputRejected, AgentResult, BaseAgent
from .overall_analysis import OverallAnalysisAgent, OverallAnalysisRequest, score_trends
from .planning import QuestionPlanningAgent, QuestionPlanningRequest
from .question_generation import QuestionGenerationAgent, QuestionGenerationRequest
from .response_analysis import ResponseAnalysisAgent, ResponseAnalysisRequest
from .topic_analysis import TopicAnalysisAgent, TopicAnalysisRequest
from .validation import QuestionValidationAgent, QuestionValidationRequest

__all__ = [
    "AgentOutputRejected",
    "AgentResult",
    "BaseAgent",
    "OverallAnalysisAgent",
    "OverallAnalysisRequest",
    "QuestionGenerationAgent",
    "QuestionGenerationRequest",
    "QuestionPlanningAgent",
    "QuestionPlanningRequest",
    "QuestionValidationAgent",
    "QuestionValidationRequest",
    "ResponseAnalysisAgent",
    "ResponseAnalysisRequest",
    "TopicAnalysisAgent",
    "TopicAnalysisRequest",
    "score_trends",
]
