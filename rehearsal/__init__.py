"""
Rehearsal: LLM-driven interview practice.

Generates interview questions with a small team of specialized agents, tracks
the interview session, and produces a scored performance report.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.session_manager import SessionManager
from .interview.models import InterviewConfig, AnalysisReport
from .errors import (
    RehearsalError, ConfigurationError, SessionNotFoundError,
    SessionStateError, LLMProviderError, RoomProviderError
)

__all__ = [
    "SessionManager", "InterviewConfig", "AnalysisReport",
    "RehearsalError", "ConfigurationError", "SessionNotFoundError",
    "SessionStateError", "LLMProviderError", "RoomProviderError",
    "build_session_manager",
]


def build_session_manager(config=None, llm_client=None, room_provider=None, use_rooms=True):
    """
    Wire a SessionManager from configuration.

    Args:
        config: Config from ``get_config()``; loaded from the environment when omitted
        llm_client: Override the configured LLM client
        room_provider: Override the configured room provider (None -> from config)
        use_rooms: False forces text mode without a room provider

    Returns:
        Tuple of (SessionManager, InterviewEventBus, InterviewMetrics)
    """
    from .config import get_config
    from .infrastructure.llm import create_llm_client
    from .infrastructure.rooms import LiveKitTokenProvider
    from .interview.analysis_orchestrator import PerformanceAnalysisOrchestrator
    from .interview.events import EventLogger, InterviewEventBus, InterviewMetrics
    from .interview.question_orchestrator import QuestionOrchestrator

    config = config or get_config()
    llm_client = llm_client or create_llm_client(config)
    if room_provider is None and use_rooms:
        room_provider = LiveKitTokenProvider.from_config(config)

    event_bus = InterviewEventBus()
    metrics = InterviewMetrics()
    event_bus.subscribe_all(EventLogger().handle_event)
    event_bus.subscribe_all(metrics.handle_event)

    manager = SessionManager(
        QuestionOrchestrator(llm_client, mode=config.question_mode, event_bus=event_bus,
                             max_revisions=config.max_question_revisions),
        PerformanceAnalysisOrchestrator(llm_client, max_workers=config.analysis_workers, event_bus=event_bus),
        room_provider=room_provider,
        event_bus=event_bus,
        prefetch=config.prefetch_next_question,
    )
    return manager, event_bus, metrics
