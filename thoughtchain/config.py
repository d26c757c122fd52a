"""
Shared configuration for the thought chain server.
"""

from __future__ import annotations

import logging
import os


def _get_bool(env_name: str, default: bool) -> bool:
    value = os.environ.get(env_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_name: str, default: int) -> int:
    value = os.environ.get(env_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


LOG_LEVEL = os.environ.get("THOUGHT_CHAIN_LOG_LEVEL", "INFO").strip().upper()

# basicConfig writes to stderr, which keeps the stdio transport clean
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger("thoughtchain")

SERVER_NAME = "thought-chain-server"
SERVER_VERSION = "1.0.0"

# Storage settings
APP_DIR_NAME = "thought-chain-mcp"
LEGACY_DIR_NAME = ".thought-chain-mcp"
DB_FILE_NAME = "thoughts.db"
DB_PATH_OVERRIDE = os.environ.get("THOUGHT_CHAIN_DB_PATH")
AUTO_MIGRATE_ON_STARTUP = _get_bool("AUTO_MIGRATE_ON_STARTUP", True)

# Request/input limits
MAX_THOUGHT_LENGTH = _get_int("MAX_THOUGHT_LENGTH", 10000)
MAX_REFLECTION_LENGTH = _get_int("MAX_REFLECTION_LENGTH", 5000)
MAX_QUERY_LENGTH = _get_int("MAX_QUERY_LENGTH", 1000)
MAX_CHAIN_ID_LENGTH = _get_int("MAX_CHAIN_ID_LENGTH", 100)
MAX_RESULT_LIMIT = _get_int("MAX_RESULT_LIMIT", 100)
DEFAULT_RECALL_LIMIT = _get_int("DEFAULT_RECALL_LIMIT", 5)

# Rate limiting
RATE_LIMIT_ENABLED = _get_bool("RATE_LIMIT_ENABLED", True)
RATE_LIMIT_MAX_REQUESTS = _get_int("RATE_LIMIT_MAX_REQUESTS", 100)
RATE_LIMIT_WINDOW_SECONDS = _get_int("RATE_LIMIT_WINDOW_SECONDS", 60)
RATE_LIMIT_CLEANUP_EVERY = _get_int("RATE_LIMIT_CLEANUP_EVERY", 100)

# Transport
SERVER_TRANSPORT = os.environ.get("SERVER_TRANSPORT", "stdio").strip().lower()
HTTP_HOST = os.environ.get("HTTP_HOST", "127.0.0.1")
HTTP_PORT = _get_int("HTTP_PORT", 8765)


def validate_and_prepare_config() -> None:
    """Validate configuration at startup."""
    errors = []
    if SERVER_TRANSPORT not in {"stdio", "http"}:
        errors.append("SERVER_TRANSPORT must be 'stdio' or 'http'")
    if MAX_RESULT_LIMIT < 1:
        errors.append("MAX_RESULT_LIMIT must be at least 1")
    if DEFAULT_RECALL_LIMIT < 1 or DEFAULT_RECALL_LIMIT > MAX_RESULT_LIMIT:
        errors.append("DEFAULT_RECALL_LIMIT must be between 1 and MAX_RESULT_LIMIT")
    for name, value in (
        ("MAX_THOUGHT_LENGTH", MAX_THOUGHT_LENGTH),
        ("MAX_REFLECTION_LENGTH", MAX_REFLECTION_LENGTH),
        ("MAX_QUERY_LENGTH", MAX_QUERY_LENGTH),
        ("MAX_CHAIN_ID_LENGTH", MAX_CHAIN_ID_LENGTH),
    ):
        if value < 1:
            errors.append(f"{name} must be positive")
    if RATE_LIMIT_ENABLED:
        if RATE_LIMIT_MAX_REQUESTS < 1:
            errors.append("RATE_LIMIT_MAX_REQUESTS must be at least 1")
        if RATE_LIMIT_WINDOW_SECONDS < 1:
            errors.append("RATE_LIMIT_WINDOW_SECONDS must be at least 1")
    if not 0 < HTTP_PORT < 65536:
        errors.append("HTTP_PORT must be a valid TCP port")

    if errors:
        raise RuntimeError("Configuration invalid: " + "; ".join(errors))
