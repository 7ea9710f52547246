"""
Exception types for the rehearsal system.

Only session-state and configuration errors are meant to reach callers;
provider errors are absorbed by the agents and replaced with fallbacks.
"""
from typing import Optional


class RehearsalError(Exception):
    """Base class for all rehearsal errors."""


class ConfigurationError(RehearsalError, ValueError):
    """Raised when configuration is missing or invalid."""


class SessionNotFoundError(RehearsalError, LookupError):
    """Raised when an operation references an unknown session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Interview session not found: {session_id}")


class SessionStateError(RehearsalError):
    """Raised when an operation is not allowed in the session's current state."""

    def __init__(self, session_id: str, operation: str, expected: str, actual: str):
        self.session_id = session_id
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Cannot {operation} session {session_id}: expected status {expected}, got {actual}"
        )


class LLMProviderError(RehearsalError, RuntimeError):
    """Raised by LLM clients on transport failures and non-2xx responses."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RoomProviderError(RehearsalError, RuntimeError):
    """Raised when a media room cannot be provisioned or a credential issued."""
