"""
Input validation for thought chain tool arguments.

Step content passes through three independent filters (markup, injection
syntax, control characters). Each filter is a pure predicate returning a
FilterResult so the heuristics can be tuned and tested in isolation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import thoughtchain.config as config
from thoughtchain.errors import ValidationError

VALID_ACTIONS = ("add_step", "review_chain", "conclude", "new_chain")
CONTENT_ACTIONS = {"add_step", "conclude"}

CHAIN_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,100}")

MARKUP_PATTERN = re.compile(
    r"<script|javascript:|on\w+=|data:text|vbscript:",
    re.IGNORECASE,
)

# Punctuation alone is fine in prose; it only counts when a structural SQL
# token or a concatenation operator follows it.
_INJECTION_LEAD = r"['\";\\][\s)]*"
_INJECTION_TOKENS = (
    r"(?:OR|AND)\b\s*['\"(]?\w+['\"]?\s*=",
    r"UNION(?:\s+ALL)?\s+SELECT\b",
    r"SELECT\s*\*",
    r"SELECT\b[^'\";]*?\bFROM\b",
    r"INSERT\s+INTO\b",
    r"UPDATE\b[^;]*?\bSET\b",
    r"DELETE\s+FROM\b",
    r"(?:DROP|CREATE|ALTER)\s+TABLE\b",
    r"EXEC(?:UTE)?\b",
    r"\|\|",
)
INJECTION_PATTERN = re.compile(
    _INJECTION_LEAD + "(?:" + "|".join(_INJECTION_TOKENS) + ")",
    re.IGNORECASE,
)
SQL_COMMENT_PATTERN = re.compile(r"--|/\*|\*/")

CONTROL_CHARACTER_PATTERN = re.compile(r"[\x00-\x1f\x7f]")

QUERY_FORBIDDEN_PATTERN = re.compile(r"[<>'\"\\;]|--|/\*|\*/")
PATH_SEQUENCES = ("..", "/")


@dataclass(frozen=True)
class FilterResult:
    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "FilterResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: str) -> "FilterResult":
        return cls(accepted=False, reason=reason)


# =============================================================================
# Predicates
# =============================================================================

def check_markup(value: str) -> FilterResult:
    if MARKUP_PATTERN.search(value):
        return FilterResult.reject("dangerous content")
    return FilterResult.accept()


def check_injection(value: str) -> FilterResult:
    if INJECTION_PATTERN.search(value) or SQL_COMMENT_PATTERN.search(value):
        return FilterResult.reject("dangerous patterns")
    return FilterResult.accept()


def check_control_characters(value: str) -> FilterResult:
    if CONTROL_CHARACTER_PATTERN.search(value):
        return FilterResult.reject("invalid characters")
    return FilterResult.accept()


def check_query(query: str) -> FilterResult:
    if QUERY_FORBIDDEN_PATTERN.search(query) or CONTROL_CHARACTER_PATTERN.search(query):
        return FilterResult.reject("invalid characters")
    if any(sequence in query for sequence in PATH_SEQUENCES):
        return FilterResult.reject("invalid path sequences")
    return FilterResult.accept()


def check_chain_id(chain_id: str) -> FilterResult:
    if not CHAIN_ID_PATTERN.fullmatch(chain_id):
        return FilterResult.reject("invalid characters or invalid length")
    # Independent of the grammar above so a looser grammar cannot reopen traversal.
    if any(sequence in chain_id for sequence in PATH_SEQUENCES):
        return FilterResult.reject("invalid path sequences")
    return FilterResult.accept()


CONTENT_FILTERS = (
    ("content contains potentially", check_markup),
    ("content contains potentially", check_injection),
    ("content contains", check_control_characters),
)


# =============================================================================
# Argument validation
# =============================================================================

def validate_content(value: str, field: str, max_len: int) -> None:
    """Screen thought/reflection text through every content filter."""
    label = field.capitalize()
    if len(value.strip()) > max_len:
        raise ValidationError(
            f"{label} content too long (max {max_len} characters)",
            field=field,
            error_type="max_length",
        )
    for prefix, check in CONTENT_FILTERS:
        result = check(value)
        if not result.accepted:
            raise ValidationError(
                f"{label} {prefix} {result.reason}",
                field=field,
                error_type=check.__name__.replace("check_", ""),
            )


def validate_action(action: Any) -> str:
    if not action or not isinstance(action, str):
        raise ValidationError(
            "Action is required and must be a string",
            field="action",
            error_type="required",
        )
    if action not in VALID_ACTIONS:
        raise ValidationError(
            f"Unknown action: {action}. Must be one of: {', '.join(VALID_ACTIONS)}",
            field="action",
            error_type="unknown_action",
        )
    return action


def validate_thought_chain_args(args: Mapping[str, Any]) -> None:
    action = validate_action(args.get("action"))

    thought = args.get("thought")
    if action in CONTENT_ACTIONS:
        if not isinstance(thought, str) or not thought.strip():
            raise ValidationError(
                "Thought is required for add_step and conclude actions",
                field="thought",
                error_type="required",
            )
        validate_content(thought, "thought", config.MAX_THOUGHT_LENGTH)

    reflection = args.get("reflection")
    if reflection is None or reflection == "":
        return
    if not isinstance(reflection, str):
        raise ValidationError("Reflection must be a string", field="reflection", error_type="invalid_type")
    validate_content(reflection, "reflection", config.MAX_REFLECTION_LENGTH)


def validate_limit(limit: Any, max_value: int) -> None:
    if limit is None:
        return
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > max_value:
        raise ValidationError(
            f"Limit must be a number between 1 and {max_value}",
            field="limit",
            error_type="out_of_range",
        )


def validate_recall_args(args: Mapping[str, Any]) -> None:
    query = args.get("query")
    if query:
        if not isinstance(query, str):
            raise ValidationError("Query must be a string", field="query", error_type="invalid_type")
        if len(query) > config.MAX_QUERY_LENGTH:
            raise ValidationError(
                f"Query too long (max {config.MAX_QUERY_LENGTH} characters)",
                field="query",
                error_type="max_length",
            )
        result = check_query(query)
        if not result.accepted:
            raise ValidationError(f"Query contains {result.reason}", field="query", error_type="invalid_query")
    validate_limit(args.get("limit"), config.MAX_RESULT_LIMIT)


def validate_load_args(args: Mapping[str, Any]) -> None:
    chain_id = args.get("chain_id")
    if not chain_id or not isinstance(chain_id, str):
        raise ValidationError(
            "Chain ID is required and must be a string",
            field="chain_id",
            error_type="required",
        )
    if len(chain_id) > config.MAX_CHAIN_ID_LENGTH:
        raise ValidationError(
            f"Chain ID too long (max {config.MAX_CHAIN_ID_LENGTH} characters)",
            field="chain_id",
            error_type="max_length",
        )
    result = check_chain_id(chain_id)
    if not result.accepted:
        raise ValidationError(f"Chain ID contains {result.reason}", field="chain_id", error_type="invalid_id")


_OPERATION_VALIDATORS = {
    "thought_chain": validate_thought_chain_args,
    "recall_thoughts": validate_recall_args,
    "load_thought_chain": validate_load_args,
}


def validate_arguments(operation: str, args: Any) -> None:
    """Validate the argument bag for ``operation``; raise ValidationError on rejection."""
    if not isinstance(args, Mapping):
        raise ValidationError("Arguments must be an object", field="arguments", error_type="invalid_type")
    validator = _OPERATION_VALIDATORS.get(operation)
    if validator is None:
        raise ValidationError(f"Unknown tool: {operation}", field="operation", error_type="unknown_tool")
    validator(args)


__all__ = [
    "FilterResult",
    "VALID_ACTIONS",
    "check_markup",
    "check_injection",
    "check_control_characters",
    "check_query",
    "check_chain_id",
    "validate_content",
    "validate_action",
    "validate_limit",
    "validate_arguments",
]
