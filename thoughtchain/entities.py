"""
Chain and step records plus their shape checks.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from thoughtchain.errors import InvariantError


class ChainStatus(str, PyEnum):
    active = "active"
    concluded = "concluded"


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_id() -> str:
    """128-bit random identifier, 32 lowercase hex characters."""
    return secrets.token_hex(16)


def builds_on_for(step_number: int) -> list[int]:
    return [step_number - 1] if step_number > 1 else []


@dataclass(frozen=True)
class Step:
    id: int
    thought: str
    timestamp: str
    reflection: Optional[str] = None
    is_conclusion: bool = False
    builds_on: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "thought": self.thought,
            "reflection": self.reflection,
            "timestamp": self.timestamp,
            "is_conclusion": self.is_conclusion,
            "builds_on": list(self.builds_on),
        }


@dataclass
class Chain:
    id: str
    created: str
    updated: Optional[str] = None
    concluded: Optional[str] = None
    status: str = ChainStatus.active.value
    steps: list[Step] = field(default_factory=list)

    @property
    def is_concluded(self) -> bool:
        return self.status == ChainStatus.concluded.value

    @property
    def last_step(self) -> Optional[Step]:
        return self.steps[-1] if self.steps else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created": self.created,
            "updated": self.updated,
            "concluded": self.concluded,
            "status": self.status,
            "steps": [step.to_dict() for step in self.steps],
        }


def new_chain(chain_id: Optional[str] = None) -> Chain:
    return Chain(id=chain_id or generate_id(), created=utc_now_iso())


def new_step(
    step_number: int,
    thought: str,
    reflection: Optional[str] = None,
    is_conclusion: bool = False,
) -> Step:
    reflection = reflection.strip() if reflection else None
    return Step(
        id=step_number,
        thought=thought.strip(),
        reflection=reflection or None,
        timestamp=utc_now_iso(),
        is_conclusion=is_conclusion,
        builds_on=builds_on_for(step_number),
    )


def check_chain_invariants(chain: Any) -> None:
    """
    Re-check a chain's shape before it is written.

    Guards against controller bugs rather than hostile input; raises
    InvariantError on the first violation found.
    """
    if not isinstance(chain, Chain):
        raise InvariantError("Thought chain must be an object")
    if not chain.id or not isinstance(chain.id, str):
        raise InvariantError("Thought chain must have a valid id")
    if not chain.created or not isinstance(chain.created, str):
        raise InvariantError("Thought chain must have a valid created timestamp")
    if chain.status not in (ChainStatus.active.value, ChainStatus.concluded.value):
        raise InvariantError(f"Thought chain has an invalid status: {chain.status}")
    if not isinstance(chain.steps, list):
        raise InvariantError("Thought chain must have steps array")

    for index, step in enumerate(chain.steps):
        if not isinstance(step, Step):
            raise InvariantError(f"Step {index} must be a step record")
        if isinstance(step.id, bool) or not isinstance(step.id, int) or step.id < 1:
            raise InvariantError(f"Step {index} must have a valid id")
        if step.id != index + 1:
            raise InvariantError(f"Step {index} is out of sequence (id {step.id})")
        if not isinstance(step.thought, str) or not step.thought.strip():
            raise InvariantError(f"Step {index} must have a valid thought")
        if not isinstance(step.timestamp, str) or not step.timestamp:
            raise InvariantError(f"Step {index} must have a valid timestamp")
        if step.reflection is not None and not isinstance(step.reflection, str):
            raise InvariantError(f"Step {index} must have a valid reflection")


__all__ = [
    "ChainStatus",
    "Chain",
    "Step",
    "utc_now_iso",
    "generate_id",
    "builds_on_for",
    "new_chain",
    "new_step",
    "check_chain_invariants",
]
