"""
Interview session lifecycle.

States: waiting -> active <-> paused -> completed. Nothing leaves completed.

Mutating operations are serialized per session with one RLock each. The next
question is pre-fetched in the background after a question is handed out and
served from the session's one-question-ahead cache when it still matches.
"""
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..config import PREFETCH_NEXT_QUESTION
from ..errors import ConfigurationError, SessionNotFoundError, SessionStateError
from ..infrastructure.rooms import RoomProvider
from .analysis_orchestrator import PerformanceAnalysisOrchestrator
from .events import (
    InterviewEventBus,
    QuestionIssuedEvent,
    QuestionPrefetchedEvent,
    ResponseSubmittedEvent,
    SessionCompletedEvent,
    SessionPausedEvent,
    SessionReconnectedEvent,
    SessionResumedEvent,
    SessionStartedEvent,
)
from .models import (
    AnalysisReport,
    CachedQuestion,
    InterviewConfig,
    InterviewResponse,
    Session,
    SessionStatus,
)
from .pacing import max_questions
from .question_orchestrator import QuestionOrchestrator

logger = logging.getLogger("session_manager")

__all__ = [
    "InMemorySessionStore",
    "ReconnectResult",
    "SessionManager",
    "SessionSnapshot",
    "SessionStore",
    "StartResult",
    "SubmitResult",
    "max_questions",
]


# =============================================================================
# RESULT OBJECTS
# =============================================================================

@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session."""
    session_id: str
    status: SessionStatus
    topic: str
    style: str
    experience_level: str
    participant_identity: str
    current_question: Optional[str]
    question_number: int
    total_questions: int
    responses_count: int
    progress: Dict[str, int]
    elapsed_seconds: float
    paused_seconds: float
    room_id: Optional[str] = None
    ended_early: bool = False
    has_report: bool = False


@dataclass(frozen=True)
class StartResult:
    session_id: str
    question: str
    question_number: int
    total_questions: int
    status: SessionStatus
    room_id: Optional[str] = None
    ws_url: Optional[str] = None
    participant_credential: Optional[str] = None
    host_credential: Optional[str] = None


@dataclass(frozen=True)
class SubmitResult:
    session_id: str
    should_continue: bool
    next_question: Optional[str]
    question_number: int
    status: SessionStatus
    progress: Dict[str, int] = field(default_factory=dict)
    from_cache: bool = False


@dataclass(frozen=True)
class ReconnectResult:
    session_id: str
    status: SessionStatus
    current_question: Optional[str]
    question_number: int
    progress: Dict[str, int]
    room_id: Optional[str] = None
    ws_url: Optional[str] = None
    participant_credential: Optional[str] = None


# =============================================================================
# SESSION STORE
# =============================================================================

class SessionStore(ABC):
    """Storage interface for sessions."""

    @abstractmethod
    def create(self, session: Session) -> None:
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    def update(self, session: Session) -> None:
        pass

    @abstractmethod
    def delete(self, session_id: str) -> None:
        pass

    @abstractmethod
    def list(self) -> List[Session]:
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store; everything is lost on restart."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, session: Session) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def update(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def list(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())


# =============================================================================
# SESSION MANAGER
# =============================================================================

class SessionManager:
    """Drives interview sessions from the first question to the final report."""

    def __init__(self,
                 question_orchestrator: QuestionOrchestrator,
                 analysis_orchestrator: PerformanceAnalysisOrchestrator,
                 store: Optional[SessionStore] = None,
                 room_provider: Optional[RoomProvider] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 prefetch: bool = PREFETCH_NEXT_QUESTION,
                 clock: Callable[[], float] = time.time,
                 executor: Optional[Executor] = None):
        self.questions = question_orchestrator
        self.analysis = analysis_orchestrator
        self.store = store or InMemorySessionStore()
        self.room_provider = room_provider
        self.event_bus = event_bus
        self.prefetch = prefetch
        self._clock = clock

        self._owns_executor = executor is None and prefetch
        if executor is None and prefetch:
            executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="question-prefetch")
        self._executor = executor

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, config: Union[InterviewConfig, Dict[str, Any]], participant_identity: str) -> StartResult:
        """
        Create a session and hand out its first question.

        With a room provider the session waits for ``mark_ready``; in text
        mode it starts active.

        Raises:
            ConfigurationError: invalid config, before any model call
            RoomProviderError: room could not be provisioned
        """
        config = self._coerce_config(config)
        if not participant_identity or not participant_identity.strip():
            raise ConfigurationError("participant_identity must not be blank")

        now = self._clock()
        session_id = f"session-{int(now * 1000)}-{uuid.uuid4().hex[:9]}"
        session = Session(
            session_id=session_id,
            config=config,
            participant_identity=participant_identity,
            started_at=now,
        )

        if self.room_provider is not None:
            grant = self.room_provider.create_room(config, participant_identity)
            session.room_id = grant.room_id
            session.ws_url = grant.ws_url
            session.participant_credential = grant.participant_credential
            session.host_credential = grant.host_credential
            session.status = SessionStatus.WAITING
        else:
            session.status = SessionStatus.ACTIVE

        total = self._total(session)
        first = self.questions.next_question(config, [], [], 1, session_id=session_id)
        session.questions.append(first)
        session.current_question_index = 1

        self.store.create(session)
        logger.info(f"Started session {session_id}: {config.topic} / {config.style.value} / "
                    f"{config.experience_level.value}, {total} questions, status {session.status.value}")
        self._emit(SessionStartedEvent(session_id, config.topic, config.style.value, total, self.questions.mode))
        self._emit(QuestionIssuedEvent(session_id, 1, first, False))

        if total > 1:
            self._schedule_prefetch(session, 2)

        return StartResult(
            session_id=session_id,
            question=first,
            question_number=1,
            total_questions=total,
            status=session.status,
            room_id=session.room_id,
            ws_url=session.ws_url,
            participant_credential=session.participant_credential,
            host_credential=session.host_credential,
        )

    def mark_ready(self, session_id: str) -> SessionSnapshot:
        """Transport readiness signal: waiting -> active."""
        with self._lock_for(session_id):
            session = self._get(session_id)
            self._require(session, "activate", SessionStatus.WAITING)
            session.status = SessionStatus.ACTIVE
            self.store.update(session)
            logger.info(f"Session {session_id} is active")
            return self._snapshot(session)

    def submit_response(self,
                        session_id: str,
                        text: str,
                        audio_metadata: Optional[Dict[str, Any]] = None,
                        duration_ms: Optional[int] = None) -> SubmitResult:
        """
        Store the answer to the current question and move on.

        Continues while fewer than ``max_questions`` have been asked and the
        active (unpaused) time is within the configured duration; otherwise the
        session completes.
        """
        with self._lock_for(session_id):
            session = self._get(session_id)
            self._require(session, "submit response to", SessionStatus.ACTIVE)

            now = self._clock()
            question_number = session.current_question_index
            response = InterviewResponse(
                question_id=f"q{question_number}",
                question_text=session.current_question,
                response_text=text or "",
                timestamp=now,
                duration_ms=int(duration_ms or 0),
                audio_metadata=dict(audio_metadata) if audio_metadata else None,
            )
            session.responses.append(response)
            self._emit(ResponseSubmittedEvent(session_id, response.question_id,
                                              len(response.response_text), response.duration_ms))

            total = self._total(session)
            within_time = self._active_seconds(session, now) < session.config.duration * 60
            should_continue = session.current_question_index < total and within_time

            if not should_continue:
                session.status = SessionStatus.COMPLETED
                session.ended_at = now
                session.cached_next_question = None
                self.store.update(session)
                reason = "time limit" if not within_time else "question limit"
                logger.info(f"Session {session_id} completed ({reason}) after {len(session.responses)} responses")
                self._emit(SessionCompletedEvent(session_id, len(session.questions), len(session.responses), False))
                return SubmitResult(
                    session_id=session_id,
                    should_continue=False,
                    next_question=None,
                    question_number=question_number,
                    status=session.status,
                    progress=self._progress(session),
                )

            next_number = question_number + 1
            next_question, from_cache = self._take_cached(session, next_number)
            if next_question is None:
                next_question = self.questions.next_question(
                    session.config, list(session.questions), list(session.responses), next_number,
                    session_id=session_id,
                )

            session.questions.append(next_question)
            session.current_question_index = next_number
            self.store.update(session)
            self._emit(QuestionIssuedEvent(session_id, next_number, next_question, from_cache))

            if next_number < total:
                self._schedule_prefetch(session, next_number + 1)

            return SubmitResult(
                session_id=session_id,
                should_continue=True,
                next_question=next_question,
                question_number=next_number,
                status=session.status,
                progress=self._progress(session),
                from_cache=from_cache,
            )

    def pause(self, session_id: str) -> SessionSnapshot:
        with self._lock_for(session_id):
            session = self._get(session_id)
            self._require(session, "pause", SessionStatus.ACTIVE)
            session.status = SessionStatus.PAUSED
            session.paused_at = self._clock()
            self.store.update(session)
            logger.info(f"Session {session_id} paused at question {session.current_question_index}")
            self._emit(SessionPausedEvent(session_id, session.current_question_index))
            return self._snapshot(session)

    def resume(self, session_id: str) -> SessionSnapshot:
        with self._lock_for(session_id):
            session = self._get(session_id)
            self._require(session, "resume", SessionStatus.PAUSED)
            paused_for = self._close_pause(session, self._clock())
            session.status = SessionStatus.ACTIVE
            self.store.update(session)
            logger.info(f"Session {session_id} resumed after {paused_for:.1f}s")
            self._emit(SessionResumedEvent(session_id, paused_for))
            return self._snapshot(session)

    def end_interview(self, session_id: str) -> AnalysisReport:
        """
        Force the session to completed and produce its report.

        Calling again returns the same report without re-running the analysis.
        """
        with self._lock_for(session_id):
            session = self._get(session_id)
            if session.report is not None:
                return session.report

            now = self._clock()
            if session.status != SessionStatus.COMPLETED:
                self._close_pause(session, now)
                session.status = SessionStatus.COMPLETED
                session.ended_at = now
                session.ended_early = True
                session.cached_next_question = None
                self._emit(SessionCompletedEvent(session_id, len(session.questions),
                                                 len(session.responses), True))

            report = self.analysis.analyze(session.responses, session.config,
                                           session_key=session_id, session_id=session_id)
            total = self._total(session)
            report.completion = {
                "questionsAsked": len(session.questions),
                "responsesGiven": len(session.responses),
                "maxQuestions": total,
                "completionRate": round(len(session.responses) / total * 100, 1),
                "endedEarly": session.ended_early,
                "activeSeconds": round(self._active_seconds(session, session.ended_at or now), 1),
                "pausedSeconds": round(session.paused_seconds, 1),
            }
            session.report = report
            self.store.update(session)
            logger.info(f"Session {session_id} ended: score {report.overall_score}, "
                        f"completion {report.completion['completionRate']}%")
            return report

    def reconnect(self, session_id: str, participant_identity: str) -> ReconnectResult:
        """Issue a fresh credential for a session that has not completed; history is untouched."""
        with self._lock_for(session_id):
            session = self._get(session_id)
            if session.status == SessionStatus.COMPLETED:
                raise SessionStateError(session_id, "reconnect to", "waiting, active or paused",
                                        session.status.value)

            credential = None
            if self.room_provider is not None and session.room_id:
                credential = self.room_provider.issue_reconnect_credential(
                    session.room_id,
                    participant_identity,
                    metadata={
                        "sessionId": session_id,
                        "questionNumber": session.current_question_index,
                        "status": session.status.value,
                    },
                )
                session.participant_credential = credential

            session.participant_identity = participant_identity
            self.store.update(session)
            logger.info(f"Participant {participant_identity} reconnected to {session_id}")
            self._emit(SessionReconnectedEvent(session_id, participant_identity))

            return ReconnectResult(
                session_id=session_id,
                status=session.status,
                current_question=session.current_question,
                question_number=session.current_question_index,
                progress=self._progress(session),
                room_id=session.room_id,
                ws_url=session.ws_url,
                participant_credential=credential,
            )

    def status(self, session_id: str) -> SessionSnapshot:
        session = self._get(session_id)
        return self._snapshot(session)

    def follow_up(self, session_id: str) -> str:
        """Follow-up probing the most recent answer."""
        with self._lock_for(session_id):
            session = self._get(session_id)
            self._require(session, "request follow-up for", SessionStatus.ACTIVE)
            if not session.responses:
                return self.questions.follow_up(session.current_question or "", "", session.config)
            last = session.responses[-1]
            return self.questions.follow_up(last.question_text, last.response_text, session.config)

    def teardown(self, session_id: str) -> None:
        """Delete a session and everything cached for it."""
        with self._lock_for(session_id):
            session = self._get(session_id)
            self.store.delete(session_id)
            self.analysis.clear_cache(session_id)

            key = QuestionOrchestrator.session_key(session.config)
            if not any(QuestionOrchestrator.session_key(s.config) == key for s in self.store.list()):
                self.questions.clear_session(session.config)

        with self._locks_guard:
            self._locks.pop(session_id, None)
        logger.info(f"Session {session_id} torn down")

    def active_sessions(self) -> List[SessionSnapshot]:
        """Snapshots of all sessions that have not completed."""
        return [self._snapshot(s) for s in self.store.list() if s.status != SessionStatus.COMPLETED]

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Pre-fetch
    # -------------------------------------------------------------------------

    def _schedule_prefetch(self, session: Session, question_number: int) -> None:
        if not self.prefetch or self._executor is None:
            return
        future = self._executor.submit(
            self._prefetch,
            session.session_id,
            session.config,
            list(session.questions),
            list(session.responses),
            question_number,
        )
        future.add_done_callback(self._log_prefetch_failure)

    @staticmethod
    def _log_prefetch_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Pre-fetch task failed: {error}", exc_info=error)

    def _prefetch(self, session_id: str, config: InterviewConfig, questions: List[str],
                  responses: List[InterviewResponse], question_number: int) -> None:
        try:
            text = self.questions.next_question(config, questions, responses, question_number,
                                                session_id=session_id)
        except Exception as e:
            logger.warning(f"Pre-fetch of question {question_number} for {session_id} failed: {e}")
            return

        stored = False
        try:
            lock = self._lock_for(session_id)
        except SessionNotFoundError:
            lock = None

        if lock is not None:
            with lock:
                session = self.store.get(session_id)
                # Only keep it if the session is still waiting on this exact question
                if (session is not None
                        and session.status != SessionStatus.COMPLETED
                        and session.current_question_index + 1 == question_number):
                    session.cached_next_question = CachedQuestion(question_number, text)
                    self.store.update(session)
                    stored = True

        logger.debug(f"Pre-fetched question {question_number} for {session_id} (stored={stored})")
        self._emit(QuestionPrefetchedEvent(session_id, question_number, stored))

    def _take_cached(self, session: Session, question_number: int):
        cached = session.cached_next_question
        session.cached_next_question = None
        if cached is not None and cached.question_number == question_number and cached.text.strip():
            return cached.text, True
        return None, False

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_for(self, session_id: str) -> threading.RLock:
        """Per-session lock; only created for sessions present in the store."""
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                if self.store.get(session_id) is None:
                    raise SessionNotFoundError(session_id)
                lock = self._locks[session_id] = threading.RLock()
            return lock

    def _get(self, session_id: str) -> Session:
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @staticmethod
    def _require(session: Session, operation: str, expected: SessionStatus) -> None:
        if session.status != expected:
            raise SessionStateError(session.session_id, operation, expected.value, session.status.value)

    @staticmethod
    def _coerce_config(config: Union[InterviewConfig, Dict[str, Any]]) -> InterviewConfig:
        if isinstance(config, InterviewConfig):
            return config
        if isinstance(config, dict):
            return InterviewConfig.from_dict(config)
        raise ConfigurationError(f"Unsupported interview config type: {type(config).__name__}")

    @staticmethod
    def _total(session: Session) -> int:
        config = session.config
        return max_questions(config.duration, config.experience_level, config.style)

    def _active_seconds(self, session: Session, now: float) -> float:
        paused = session.paused_seconds
        if session.paused_at is not None:
            paused += now - session.paused_at
        return max(0.0, now - session.started_at - paused)

    @staticmethod
    def _close_pause(session: Session, now: float) -> float:
        if session.paused_at is None:
            return 0.0
        paused_for = max(0.0, now - session.paused_at)
        session.paused_seconds += paused_for
        session.paused_at = None
        return paused_for

    def _progress(self, session: Session) -> Dict[str, int]:
        total = self._total(session)
        current = session.current_question_index
        return {"current": current, "total": total, "percentage": round(current / total * 100)}

    def _snapshot(self, session: Session) -> SessionSnapshot:
        config = session.config
        now = session.ended_at or self._clock()
        return SessionSnapshot(
            session_id=session.session_id,
            status=session.status,
            topic=config.topic,
            style=config.style.value,
            experience_level=config.experience_level.value,
            participant_identity=session.participant_identity,
            current_question=session.current_question,
            question_number=session.current_question_index,
            total_questions=self._total(session),
            responses_count=len(session.responses),
            progress=self._progress(session),
            elapsed_seconds=round(self._active_seconds(session, now), 3),
            paused_seconds=round(session.paused_seconds, 3),
            room_id=session.room_id,
            ended_early=session.ended_early,
            has_report=session.report is not None,
        )

    def _emit(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event)
