"""
Chain controller: the new/add/review/conclude state machine plus load/search.

Every mutation is built on a copy of the session's current chain and only
swapped into the session after the store accepted it, so a failed save
leaves the session untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

import thoughtchain.config as config
from thoughtchain.entities import (
    Chain,
    ChainStatus,
    Step,
    new_chain,
    new_step,
    utc_now_iso,
)
from thoughtchain.errors import NotFoundError, ValidationError
from thoughtchain.services.chain_store import ChainStats, ChainStore
from thoughtchain.session import ChainSession
from thoughtchain.validators import validate_arguments

logger = config.logger

THOUGHT_REQUIRED_MESSAGE = "Thought is required for add_step and conclude actions"


@dataclass(frozen=True)
class MutationResult:
    action: str
    chain: Chain
    step: Optional[Step] = None


@dataclass(frozen=True)
class SearchResult:
    query: str
    chains: list[Chain] = field(default_factory=list)


def _require_thought(thought: Optional[str]) -> str:
    if not isinstance(thought, str) or not thought.strip():
        raise ValidationError(THOUGHT_REQUIRED_MESSAGE, field="thought", error_type="required")
    return thought


class ChainController:
    def __init__(self, store: ChainStore):
        self.store = store

    def mutate(
        self,
        session: ChainSession,
        action: str,
        thought: Optional[str] = None,
        reflection: Optional[str] = None,
    ) -> MutationResult:
        """Validate a mutation request and dispatch it to its action."""
        validate_arguments(
            "thought_chain",
            {"action": action, "thought": thought, "reflection": reflection},
        )
        if action == "new_chain":
            return self.new_chain()
        if action == "add_step":
            return self.add_step(session, thought, reflection)
        if action == "review_chain":
            return self.review_chain(session)
        if action == "conclude":
            return self.conclude(session, thought, reflection)
        # unreachable while VALID_ACTIONS matches the branches above
        raise ValidationError(f"Unknown action: {action}", field="action", error_type="unknown_action")

    def new_chain(self, chain_id: Optional[str] = None) -> MutationResult:
        """Persist a new empty chain; the caller decides when it becomes current."""
        chain = new_chain(chain_id)
        self.store.put(chain)
        logger.info("chain_created", extra={"chain_id": chain.id})
        return MutationResult(action="new_chain", chain=chain)

    def _append(
        self,
        session: ChainSession,
        thought: str,
        reflection: Optional[str],
        is_conclusion: bool,
    ) -> tuple[Chain, Step]:
        current = session.current
        step = new_step(len(current.steps) + 1, thought, reflection, is_conclusion)
        now = utc_now_iso()
        updated = replace(current, steps=[*current.steps, step], updated=now)
        if is_conclusion:
            updated = replace(updated, status=ChainStatus.concluded.value, concluded=now)
        self.store.put(updated)
        session.swap(updated)
        return updated, step

    def add_step(
        self,
        session: ChainSession,
        thought: Optional[str],
        reflection: Optional[str] = None,
    ) -> MutationResult:
        # Concluded chains accept further steps; a conclusion is not a lock.
        chain, step = self._append(session, _require_thought(thought), reflection, is_conclusion=False)
        logger.info("chain_step_added", extra={"chain_id": chain.id, "step_id": step.id})
        return MutationResult(action="add_step", chain=chain, step=step)

    def review_chain(self, session: ChainSession) -> MutationResult:
        return MutationResult(action="review_chain", chain=session.current)

    def conclude(
        self,
        session: ChainSession,
        thought: Optional[str],
        reflection: Optional[str] = None,
    ) -> MutationResult:
        chain, step = self._append(session, _require_thought(thought), reflection, is_conclusion=True)
        logger.info("chain_concluded", extra={"chain_id": chain.id, "step_count": len(chain.steps)})
        return MutationResult(action="conclude", chain=chain, step=step)

    def load(self, session: ChainSession, chain_id: str) -> Chain:
        """Fetch a stored chain, reactivate it and make it the session's current chain."""
        validate_arguments("load_thought_chain", {"chain_id": chain_id})
        chain = self.store.get(chain_id)
        if chain is None:
            raise NotFoundError(f"Thought chain with ID {chain_id} not found")

        reactivated = replace(chain, status=ChainStatus.active.value)
        self.store.put(reactivated)
        session.swap(reactivated)
        logger.info("chain_loaded", extra={"chain_id": chain_id, "step_count": len(chain.steps)})
        return reactivated

    def search(self, query: Optional[str] = None, limit: Optional[int] = None) -> SearchResult:
        validate_arguments("recall_thoughts", {"query": query, "limit": limit})
        limit = config.DEFAULT_RECALL_LIMIT if limit is None else limit
        query = query or ""
        return SearchResult(query=query, chains=self.store.search(query, limit))

    def stats(self) -> ChainStats:
        return self.store.stats()

    def resume_most_recent(self, session: ChainSession) -> Optional[Chain]:
        """Swap the newest active chain into ``session``, if there is one."""
        chain = self.store.most_recent_active()
        if chain is not None:
            session.swap(chain)
            logger.info("chain_resumed", extra={"chain_id": chain.id})
        return chain


__all__ = [
    "ChainController",
    "MutationResult",
    "SearchResult",
    "THOUGHT_REQUIRED_MESSAGE",
]
