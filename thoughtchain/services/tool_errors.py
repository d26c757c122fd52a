"""
Error reporting shared by every tool entry point.
"""

from __future__ import annotations

import thoughtchain.config as config
from thoughtchain.errors import (
    NotFoundError,
    RateLimitError,
    ValidationError,
    safe_error_message,
)

logger = config.logger


def _log_validation_issue(tool_name: str, exc: ValidationError) -> None:
    logger.info(
        "tool_validation_error",
        extra={
            "tool": tool_name,
            "field": exc.field,
            "error_type": exc.error_type,
            "detail": str(exc),
        },
    )


def log_tool_failure(tool_name: str, exc: BaseException) -> None:
    if isinstance(exc, ValidationError):
        _log_validation_issue(tool_name, exc)
    elif isinstance(exc, (NotFoundError, RateLimitError)):
        logger.info("tool_rejected", extra={"tool": tool_name, "detail": str(exc)})
    else:
        logger.error("tool_failed", extra={"tool": tool_name}, exc_info=exc)


def tool_error_message(tool_name: str, exc: BaseException) -> str:
    """Log ``exc`` and return the text the caller may see."""
    log_tool_failure(tool_name, exc)
    return f"Error: {safe_error_message(exc)}"


__all__ = ["log_tool_failure", "tool_error_message"]
