"""Interview rehearsal components.

This module contains the business logic for rehearsing interviews: the response
normalizer, the specialized agents, the question and analysis orchestrators
and the session manager.
"""

# Session lifecycle
from .session_manager import (
    SessionManager, SessionStore, InMemorySessionStore,
    SessionSnapshot, StartResult, SubmitResult, ReconnectResult
)

# Orchestrators
from .question_orchestrator import QuestionOrchestrator
from .analysis_orchestrator import PerformanceAnalysisOrchestrator

# Data models
from .models import (
    InterviewConfig, InterviewStyle, ExperienceLevel, SessionStatus,
    TopicAnalysis, QuestionSpec, GeneratedQuestion, QuestionValidation, QuestionPlan,
    InterviewResponse, ResponseAnalysis, OverallAnalysis, QuestionReview,
    AnalysisReport, Session, performance_level_for
)

# Pacing rules
from .pacing import max_questions, difficulty_for

# Response normalizer
from .schemas import normalize, NormalizeResult, FieldRule, SCHEMAS

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent
)

__all__ = [
    # Sessions
    "SessionManager", "SessionStore", "InMemorySessionStore",
    "SessionSnapshot", "StartResult", "SubmitResult", "ReconnectResult",

    # Orchestrators
    "QuestionOrchestrator", "PerformanceAnalysisOrchestrator",

    # Data models
    "InterviewConfig", "InterviewStyle", "ExperienceLevel", "SessionStatus",
    "TopicAnalysis", "QuestionSpec", "GeneratedQuestion", "QuestionValidation", "QuestionPlan",
    "InterviewResponse", "ResponseAnalysis", "OverallAnalysis", "QuestionReview",
    "AnalysisReport", "Session", "performance_level_for",

    # Pacing
    "max_questions", "difficulty_for",

    # Normalizer
    "normalize", "NormalizeResult", "FieldRule", "SCHEMAS",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent"
]
