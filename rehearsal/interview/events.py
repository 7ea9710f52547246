"""
Event-driven observability for the rehearsal system.

Components emit typed events onto an InterviewEventBus; subscribers such as
EventLogger and InterviewMetrics consume them. Handler failures are logged and
never propagate back into the interview flow.
"""
import logging
import threading
import time
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_STARTED = "session_started"
    QUESTION_ISSUED = "question_issued"
    QUESTION_PREFETCHED = "question_prefetched"
    RESPONSE_SUBMITTED = "response_submitted"
    SESSION_PAUSED = "session_paused"
    SESSION_RESUMED = "session_resumed"
    SESSION_RECONNECTED = "session_reconnected"
    SESSION_COMPLETED = "session_completed"
    AGENT_FALLBACK = "agent_fallback"
    ANALYSIS_COMPLETED = "analysis_completed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: Optional[str]
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when a session is created."""
    def __init__(self, session_id: str, topic: str, style: str, max_questions: int, mode: str):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=time.time(),
            data={"topic": topic, "style": style, "max_questions": max_questions, "mode": mode}
        )


@dataclass
class QuestionIssuedEvent(InterviewEvent):
    """Event fired when a question is handed to the candidate."""
    def __init__(self, session_id: str, question_number: int, question: str, from_cache: bool):
        super().__init__(
            event_type=EventType.QUESTION_ISSUED,
            session_id=session_id,
            timestamp=time.time(),
            data={"question_number": question_number, "question": question, "from_cache": from_cache}
        )


@dataclass
class QuestionPrefetchedEvent(InterviewEvent):
    """Event fired when a one-ahead question lands in the cache (or is discarded)."""
    def __init__(self, session_id: str, question_number: int, stored: bool):
        super().__init__(
            event_type=EventType.QUESTION_PREFETCHED,
            session_id=session_id,
            timestamp=time.time(),
            data={"question_number": question_number, "stored": stored}
        )


@dataclass
class ResponseSubmittedEvent(InterviewEvent):
    """Event fired when the candidate answers a question."""
    def __init__(self, session_id: str, question_id: str, response_length: int, duration_ms: int):
        super().__init__(
            event_type=EventType.RESPONSE_SUBMITTED,
            session_id=session_id,
            timestamp=time.time(),
            data={"question_id": question_id, "response_length": response_length, "duration_ms": duration_ms}
        )


@dataclass
class SessionPausedEvent(InterviewEvent):
    """Event fired when a session is paused."""
    def __init__(self, session_id: str, question_number: int):
        super().__init__(
            event_type=EventType.SESSION_PAUSED,
            session_id=session_id,
            timestamp=time.time(),
            data={"question_number": question_number}
        )


@dataclass
class SessionResumedEvent(InterviewEvent):
    """Event fired when a paused session resumes."""
    def __init__(self, session_id: str, paused_seconds: float):
        super().__init__(
            event_type=EventType.SESSION_RESUMED,
            session_id=session_id,
            timestamp=time.time(),
            data={"paused_seconds": paused_seconds}
        )


@dataclass
class SessionReconnectedEvent(InterviewEvent):
    """Event fired when a participant rejoins a session."""
    def __init__(self, session_id: str, participant_identity: str):
        super().__init__(
            event_type=EventType.SESSION_RECONNECTED,
            session_id=session_id,
            timestamp=time.time(),
            data={"participant_identity": participant_identity}
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when a session reaches the completed state."""
    def __init__(self, session_id: str, questions_asked: int, responses_given: int, ended_early: bool):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=time.time(),
            data={
                "questions_asked": questions_asked,
                "responses_given": responses_given,
                "ended_early": ended_early
            }
        )


@dataclass
class AgentFallbackEvent(InterviewEvent):
    """Event fired when an agent substitutes its deterministic fallback."""
    def __init__(self, session_id: Optional[str], agent: str, reason: str):
        super().__init__(
            event_type=EventType.AGENT_FALLBACK,
            session_id=session_id,
            timestamp=time.time(),
            data={"agent": agent, "reason": reason}
        )


@dataclass
class AnalysisCompletedEvent(InterviewEvent):
    """Event fired when a performance report has been produced."""
    def __init__(self, session_id: Optional[str], overall_score: int, performance_level: str,
                 analysis_method: str, responses_analyzed: int):
        super().__init__(
            event_type=EventType.ANALYSIS_COMPLETED,
            session_id=session_id,
            timestamp=time.time(),
            data={
                "overall_score": overall_score,
                "performance_level": performance_level,
                "analysis_method": analysis_method,
                "responses_analyzed": responses_analyzed
            }
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: Optional[str], error_type: str, error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=time.time(),
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Thread-safe event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """
        Subscribe to all events.

        Args:
            handler: Function to call for any event
        """
        with self._lock:
            self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Unsubscribe from specific event type.

        Args:
            event_type: Type of event to stop listening for
            handler: Handler function to remove
        """
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        Handlers run on the emitting thread, outside the bus lock.

        Args:
            event: Event to emit
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))
            global_handlers = list(self._global_handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        """Log event details."""
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects counters from interview events."""

    _COUNTERS = {
        EventType.SESSION_STARTED: "sessions_started",
        EventType.SESSION_COMPLETED: "sessions_completed",
        EventType.QUESTION_ISSUED: "questions_issued",
        EventType.RESPONSE_SUBMITTED: "responses_submitted",
        EventType.SESSION_RECONNECTED: "reconnections",
        EventType.AGENT_FALLBACK: "agent_fallbacks",
        EventType.ANALYSIS_COMPLETED: "reports_generated",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}
        self.prefetch_hits = 0
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        name = self._COUNTERS.get(event.event_type)
        with self._lock:
            if name:
                self._counts[name] += 1
            if event.event_type == EventType.QUESTION_ISSUED and event.data.get("from_cache"):
                self.prefetch_hits += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        with self._lock:
            snapshot = dict(self._counts)
            snapshot["prefetch_hits"] = self.prefetch_hits
        return snapshot

    def reset(self) -> None:
        """Reset all metrics to zero."""
        with self._lock:
            self._counts = {name: 0 for name in self._COUNTERS.values()}
            self.prefetch_hits = 0
