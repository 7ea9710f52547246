"""
Base agent: one prompt, one model call, one normalizer pass.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..events import AgentFallbackEvent, InterviewEventBus
from ..prompts import InterviewPrompts
from ..schemas import normalize


@dataclass
class AgentResult:
    """Outcome of a single agent execution."""
    success: bool
    data: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return bool(self.metadata.get("fallback"))


class AgentOutputRejected(ValueError):
    """Raised by ``build`` when normalized data is unusable for the agent's task."""


class BaseAgent(ABC):
    """
    A single-purpose unit mapping one structured request to one structured output.

    Subclasses supply the role description, the task prompt, the normalizer
    schema, a ``build`` step that turns normalized data into a typed result,
    and a deterministic ``fallback``.

    ``execute`` never raises for model or parsing problems:
    - prompt or model call failure -> success=False, data=None (caller decides)
    - unusable output -> success=False, data=fallback(request)
    """

    name = "BaseAgent"
    schema_name = ""

    def __init__(self, llm_client, event_bus: Optional[InterviewEventBus] = None):
        self.llm_client = llm_client
        self.event_bus = event_bus
        self.logger = logging.getLogger(f"agents.{self.name}")

    @abstractmethod
    def system_prompt(self) -> str:
        """Fixed role description used to frame every call."""

    @abstractmethod
    def prepare_prompt(self, request, context: Dict[str, Any]) -> str:
        """Build the task prompt for one request."""

    @abstractmethod
    def build(self, data: Dict[str, Any], request) -> Any:
        """Turn normalized data into the typed result or raise AgentOutputRejected."""

    @abstractmethod
    def fallback(self, request) -> Any:
        """Deterministic, model-free substitute output."""

    def execute(self, request, context: Optional[Dict[str, Any]] = None) -> AgentResult:
        """
        Run the agent once.

        Args:
            request: Agent-specific request object
            context: Optional call context; ``session_id`` tags emitted events

        Returns:
            AgentResult describing success, data and parse metadata
        """
        context = context or {}
        started = time.monotonic()

        try:
            prompt = self.prepare_prompt(request, context)
            raw = self.llm_client.call(
                [{"role": "user", "content": prompt}],
                InterviewPrompts.with_json_instruction(self.system_prompt()),
            )
        except Exception as e:
            self.logger.error(f"[{self.name}] Execution error: {e}")
            self._report_fallback(context, f"call failed: {e}")
            return AgentResult(
                success=False,
                data=None,
                metadata=self._metadata(started, fallback=False),
                error=str(e),
            )

        result = normalize(raw, self.schema_name)
        if not result.ok:
            self.logger.warning(f"[{self.name}] Output could not be normalized: {result.errors}")
            return self._fallback_result(request, context, started, "; ".join(result.errors),
                                         parse_method=result.method, raw_preview=result.raw_preview)

        try:
            data = self.build(result.data, request)
        except AgentOutputRejected as e:
            self.logger.warning(f"[{self.name}] Output rejected: {e}")
            return self._fallback_result(request, context, started, str(e), parse_method=result.method)

        self.logger.debug(f"[{self.name}] Execution completed via '{result.method}' parse")
        return AgentResult(
            success=True,
            data=data,
            metadata=self._metadata(started, fallback=False, parse_method=result.method,
                                    validation_errors=result.errors),
        )

    def execute_with_fallback(self, request, context: Optional[Dict[str, Any]] = None) -> AgentResult:
        """Like ``execute`` but always returns data, applying the fallback on call failure."""
        result = self.execute(request, context)
        if result.data is None:
            result.data = self.fallback(request)
            result.metadata["fallback"] = True
        return result

    def _fallback_result(self, request, context: Dict[str, Any], started: float, reason: str,
                         **extra: Any) -> AgentResult:
        self._report_fallback(context, reason)
        return AgentResult(
            success=False,
            data=self.fallback(request),
            metadata=self._metadata(started, fallback=True, **extra),
            error=reason,
        )

    def _metadata(self, started: float, **extra: Any) -> Dict[str, Any]:
        metadata = {
            "agent": self.name,
            "elapsed_ms": int((time.monotonic() - started) * 1000),
        }
        metadata.update({k: v for k, v in extra.items() if v is not None})
        return metadata

    def _report_fallback(self, context: Dict[str, Any], reason: str) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(AgentFallbackEvent(context.get("session_id"), self.name, reason))


def clean_strings(items: Iterable[Any]) -> List[str]:
    """Stringify list items, dropping blanks."""
    cleaned = []
    for item in items or []:
        text = str(item).strip() if item is not None else ""
        if text:
            cleaned.append(text)
    return cleaned


def to_score(value: Any, default: int = 70) -> int:
    """Round a normalized number into an int score in [0, 100]."""
    if value is None:
        return default
    return int(max(0, min(100, round(float(value)))))
