"""
Testing infrastructure with mock collaborators for the rehearsal system.
"""
import itertools
import json
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import LLMProviderError, RoomProviderError
from ..infrastructure.rooms import RoomGrant, RoomProvider
from .analysis_orchestrator import PerformanceAnalysisOrchestrator
from .events import EventLogger, InterviewEventBus, InterviewMetrics
from .models import AnalysisReport, InterviewConfig, InterviewResponse
from .question_orchestrator import QuestionOrchestrator
from .session_manager import SessionManager

# Phrases that identify each agent's system prompt
TOPIC_ROLE = "Topic Analysis Agent"
GENERATION_ROLE = "Question Generation Agent"
VALIDATION_ROLE = "Validation Agent"
PLANNING_ROLE = "Question Planning Agent"
RESPONSE_ROLE = "Response Analysis Agent"
OVERALL_ROLE = "Overall Analysis Agent"
FOLLOW_UP_ROLE = "follow-up question"

MockReply = Union[str, Exception, Callable[[List[Dict[str, str]], str], str]]


MOCK_TOPIC_ANALYSIS = {
    "mainConcepts": ["Components", "Hooks", "State Management"],
    "skills": ["JSX", "React Hooks", "Testing"],
    "technologies": ["React", "Redux", "Jest"],
    "focusAreas": ["Component Design", "State Management", "Performance Optimization"],
    "relevanceKeywords": ["component", "hook", "state", "props", "react"],
    "complexity": "medium",
    "questionCategories": ["technical", "fundamentals", "practical"],
}

MOCK_RESPONSE_ANALYSIS = {
    "responseAnalysis": {
        "clarity": 82,
        "structure": 78,
        "technical": 75,
        "communication": 80,
        "confidence": 77,
        "relevance": 84,
    },
    "score": 79,
    "strengths": ["Clear explanation of hooks", "Good use of examples"],
    "improvements": ["Mention performance trade-offs"],
    "keyInsights": ["Solid fundamentals"],
    "feedback": "Well structured answer with a relevant example.",
}

MOCK_OVERALL_ANALYSIS = {
    "overallScore": 78,
    "performanceLevel": "excellent",
    "strengths": ["Consistent fundamentals"],
    "improvements": ["Go deeper on performance"],
    "responseAnalysis": {"clarity": 80, "structure": 76, "technical": 74, "communication": 79, "confidence": 77},
    "trends": {"improvement": "improving", "consistency": "high", "adaptability": "medium"},
    "recommendations": ["Practice system design questions"],
    "executiveSummary": "The candidate showed good React knowledge throughout the session.",
    "nextSteps": ["Build a small project using context and reducers"],
}

MOCK_VALIDATION_APPROVE = {
    "validation": {"isValid": True, "topicRelevance": 90, "difficultyMatch": 85, "clarity": 88, "overallScore": 88},
    "issues": [],
    "suggestions": [],
    "decision": "approve",
    "reasoning": "Relevant and clear",
}

MOCK_VALIDATION_REVISE = {
    "validation": {"isValid": False, "topicRelevance": 40, "difficultyMatch": 60, "clarity": 70, "overallScore": 57},
    "issues": ["Too generic"],
    "suggestions": ["Reference hooks explicitly"],
    "decision": "revise",
    "reasoning": "Not specific enough",
}

MOCK_PLAN = {
    "questionPlan": {"totalQuestions": 5, "progression": "easy-to-hard",
                     "focusDistribution": {"fundamentals": 40, "practical": 40, "advanced": 20}},
    "nextQuestionSpec": {
        "category": "technical",
        "difficulty": "medium",
        "focusArea": "State Management",
        "concepts": ["Hooks", "State Management"],
        "avoidTopics": [],
        "questionType": "practical",
    },
    "reasoning": "Build on fundamentals",
}


class MockLLMClient:
    """
    Scripted LLM client for testing.

    Replies are resolved in order:
    1. ``routes``: first key found in the system prompt wins
    2. ``mock_responses``: consumed one per call
    3. ``default_response``

    A reply may be a string, an exception instance (raised) or a callable
    taking ``(messages, system_prompt)``.
    """

    def __init__(self,
                 mock_responses: Optional[List[MockReply]] = None,
                 routes: Optional[Dict[str, MockReply]] = None,
                 default_response: MockReply = "{}"):
        self.mock_responses = list(mock_responses or [])
        self.routes = dict(routes or {})
        self.default_response = default_response
        self.current_response_idx = 0
        self.request_history: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def call(self, messages: List[Dict[str, str]], system_prompt: str = "") -> str:
        """Return the next scripted reply."""
        with self._lock:
            self.request_history.append({"messages": list(messages), "system_prompt": system_prompt})
            reply = self._next_reply(system_prompt)

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(messages, system_prompt)
        return reply

    def calls_for(self, role: str) -> List[Dict[str, Any]]:
        """Recorded requests whose system prompt contains ``role``."""
        with self._lock:
            return [r for r in self.request_history if role in r["system_prompt"]]

    def _next_reply(self, system_prompt: str) -> MockReply:
        for key, reply in self.routes.items():
            if key in system_prompt:
                return reply
        if self.current_response_idx < len(self.mock_responses):
            reply = self.mock_responses[self.current_response_idx]
            self.current_response_idx += 1
            return reply
        return self.default_response


class FailingLLMClient:
    """LLM client whose every call fails like an unreachable provider."""

    def __init__(self, message: str = "provider unavailable", status_code: Optional[int] = 503):
        self.message = message
        self.status_code = status_code
        self.call_count = 0

    def call(self, messages: List[Dict[str, str]], system_prompt: str = "") -> str:
        self.call_count += 1
        raise LLMProviderError(self.message, status_code=self.status_code)


class MockRoomProvider(RoomProvider):
    """In-memory room provider that records issued credentials."""

    def __init__(self, ws_url: str = "wss://rooms.test", fail: bool = False):
        self.ws_url = ws_url
        self.fail = fail
        self.rooms: Dict[str, Dict[str, Any]] = {}
        self.reconnects: List[Dict[str, Any]] = []
        self._counter = itertools.count(1)

    def create_room(self, config, participant_name: str) -> RoomGrant:
        if self.fail:
            raise RoomProviderError("mock room provider failure")
        number = next(self._counter)
        room_id = f"interview-test-{number}"
        self.rooms[room_id] = {"participant": participant_name, "config": config}
        return RoomGrant(
            room_id=room_id,
            participant_credential=f"participant-token-{number}",
            host_credential=f"host-token-{number}",
            ws_url=self.ws_url,
        )

    def issue_reconnect_credential(self, room_id: str, participant_name: str,
                                   metadata: Optional[Dict[str, Any]] = None) -> str:
        if self.fail:
            raise RoomProviderError("mock room provider failure")
        self.reconnects.append({"room_id": room_id, "participant": participant_name, "metadata": metadata})
        return f"reconnect-token-{room_id}-{len(self.reconnects)}"


class ImmediateExecutor(Executor):
    """Runs submitted work synchronously so pre-fetch is deterministic in tests."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class SequentialQuestions:
    """Callable reply producing a distinct, valid question JSON per call."""

    def __init__(self, topic: str = "React"):
        self.topic = topic
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self, messages: List[Dict[str, str]], system_prompt: str) -> str:
        with self._lock:
            n = next(self._counter)
        return json.dumps({
            "question": f"How would you use {self.topic} component state in scenario number {n}?",
            "metadata": {"difficulty": "medium", "focusArea": "State Management",
                         "concepts": ["Hooks"], "questionType": "practical"},
            "reasoning": "Scripted",
        })


def create_mock_llm_client(topic: str = "React", **overrides: MockReply) -> MockLLMClient:
    """MockLLMClient answering every agent role with valid JSON."""
    routes: Dict[str, MockReply] = {
        TOPIC_ROLE: json.dumps(MOCK_TOPIC_ANALYSIS),
        GENERATION_ROLE: SequentialQuestions(topic),
        VALIDATION_ROLE: json.dumps(MOCK_VALIDATION_APPROVE),
        PLANNING_ROLE: json.dumps(MOCK_PLAN),
        RESPONSE_ROLE: json.dumps(MOCK_RESPONSE_ANALYSIS),
        OVERALL_ROLE: json.dumps(MOCK_OVERALL_ANALYSIS),
        FOLLOW_UP_ROLE: f"Can you give a concrete {topic} example of that?",
    }
    for role, reply in overrides.items():
        routes[_ROLE_ALIASES.get(role, role)] = reply
    return MockLLMClient(routes=routes)


_ROLE_ALIASES = {
    "topic": TOPIC_ROLE,
    "generation": GENERATION_ROLE,
    "validation": VALIDATION_ROLE,
    "planning": PLANNING_ROLE,
    "response": RESPONSE_ROLE,
    "overall": OVERALL_ROLE,
    "follow_up": FOLLOW_UP_ROLE,
}


def create_test_config(**overrides: Any) -> InterviewConfig:
    """React / technical / junior / 30 minutes unless overridden."""
    data = {"topic": "React", "style": "technical", "experienceLevel": "junior", "duration": 30}
    data.update(overrides)
    return InterviewConfig.from_dict(data)


def create_test_responses(count: int = 3) -> List[InterviewResponse]:
    return [
        InterviewResponse(
            question_id=f"q{i}",
            question_text=f"Question {i} about React components?",
            response_text=f"Answer {i}: I would lift state up and use hooks to share it between components.",
            timestamp=1_700_000_000.0 + i * 60,
            duration_ms=30_000 + i * 1000,
        )
        for i in range(1, count + 1)
    ]


def create_mock_session_setup(llm_client=None,
                              room_provider: Optional[RoomProvider] = None,
                              mode: str = "fast",
                              prefetch: bool = False,
                              clock: Optional[Callable[[], float]] = None,
                              analysis_workers: int = 1) -> Dict[str, Any]:
    """Wire a SessionManager over mock collaborators."""
    llm_client = llm_client or create_mock_llm_client()
    event_bus = InterviewEventBus()
    metrics = InterviewMetrics()
    event_bus.subscribe_all(EventLogger().handle_event)
    event_bus.subscribe_all(metrics.handle_event)

    question_orchestrator = QuestionOrchestrator(llm_client, mode=mode, event_bus=event_bus)
    analysis_orchestrator = PerformanceAnalysisOrchestrator(llm_client, max_workers=analysis_workers,
                                                            event_bus=event_bus)
    kwargs: Dict[str, Any] = {}
    if clock is not None:
        kwargs["clock"] = clock
    manager = SessionManager(
        question_orchestrator,
        analysis_orchestrator,
        room_provider=room_provider,
        event_bus=event_bus,
        prefetch=prefetch,
        executor=ImmediateExecutor() if prefetch else None,
        **kwargs,
    )
    return {
        "llm_client": llm_client,
        "event_bus": event_bus,
        "metrics": metrics,
        "question_orchestrator": question_orchestrator,
        "analysis_orchestrator": analysis_orchestrator,
        "manager": manager,
    }


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ReportValidator:
    """Helper for validating analysis reports."""

    @staticmethod
    def validate_report(report: AnalysisReport) -> List[str]:
        """
        Validate a report and return the issues found.

        Returns:
            List of validation error messages (empty if valid)
        """
        issues = []

        if not (0 <= report.overall_score <= 100):
            issues.append(f"Overall score out of range: {report.overall_score}")

        if report.performance_level not in ("excellent", "good", "fair", "needs_improvement"):
            issues.append(f"Unknown performance level: {report.performance_level}")

        if not report.overall.executive_summary:
            issues.append("Missing executive summary")

        if report.metadata.get("analysis_method") not in ("agentic", "fallback"):
            issues.append("Missing analysis method")

        for i, review in enumerate(report.question_reviews):
            if not (0 <= review.score <= 100):
                issues.append(f"Review {i + 1} score out of range: {review.score}")
            if not review.feedback:
                issues.append(f"Review {i + 1} has no feedback")

        return issues

    @staticmethod
    def assert_valid_report(report: AnalysisReport) -> None:
        """Assert that a report is valid, raising AssertionError if not."""
        issues = ReportValidator.validate_report(report)
        if issues:
            raise AssertionError(f"Invalid analysis report: {'; '.join(issues)}")
