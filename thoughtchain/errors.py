"""
Shared error types for the thought chain core.
"""

from typing import Optional

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again."

_SENSITIVE_MARKERS = ("database", "SQL", "sqlalchemy", "internal")


class ThoughtChainError(Exception):
    """Base class for errors raised by the core."""


class ValidationError(ThoughtChainError, ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type


class NotFoundError(ThoughtChainError, LookupError):
    """Raised when a chain id does not resolve in the store."""


class InvariantError(ThoughtChainError, RuntimeError):
    """Raised when a chain fails its shape checks before a write."""


class StorageError(ThoughtChainError, RuntimeError):
    """Raised when the backing store cannot be read or written."""


class RateLimitError(ThoughtChainError):
    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


def is_user_facing(exc: BaseException) -> bool:
    if not isinstance(exc, (ValidationError, NotFoundError, RateLimitError)):
        return False
    message = str(exc)
    return not any(marker in message for marker in _SENSITIVE_MARKERS)


def safe_error_message(exc: BaseException) -> str:
    """Return the message that may be shown to the caller for ``exc``."""
    if is_user_facing(exc):
        return str(exc)
    return INTERNAL_ERROR_MESSAGE
