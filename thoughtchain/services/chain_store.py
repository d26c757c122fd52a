"""
Durable chain storage.

Chains are persisted wholesale: every save replaces the header row and all
step rows for that chain inside a single transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession, selectinload, sessionmaker

import thoughtchain.config as config
from thoughtchain.entities import (
    Chain,
    ChainStatus,
    Step,
    builds_on_for,
    check_chain_invariants,
)
from thoughtchain.errors import StorageError
from thoughtchain.models import ThoughtChainRecord, ThoughtStepRecord

logger = config.logger


@dataclass(frozen=True)
class ChainStats:
    total_chains: int
    total_steps: int
    active_chains: int
    storage_location: str

    def to_dict(self) -> dict:
        return {
            "total_chains": self.total_chains,
            "total_steps": self.total_steps,
            "active_chains": self.active_chains,
            "storage_location": self.storage_location,
        }


def _step_from_record(record: ThoughtStepRecord) -> Step:
    return Step(
        id=record.step_number,
        thought=record.thought,
        reflection=record.reflection,
        timestamp=record.timestamp,
        is_conclusion=bool(record.is_conclusion),
        builds_on=builds_on_for(record.step_number),
    )


def _chain_from_record(record: ThoughtChainRecord) -> Chain:
    return Chain(
        id=record.id,
        created=record.created,
        updated=record.updated,
        concluded=record.concluded,
        status=record.status,
        steps=[_step_from_record(step) for step in record.steps],
    )


class ChainStore:
    def __init__(self, engine: Engine, location: str):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self.location = location
        self._closed = False

    @contextmanager
    def _session(self, operation: str) -> Iterator[DBSession]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("storage_error", extra={"operation": operation, "error": str(exc)})
            raise StorageError(f"Failed to {operation}") from exc
        finally:
            db.close()

    def _chains_query(self, db: DBSession):
        return db.query(ThoughtChainRecord).options(selectinload(ThoughtChainRecord.steps))

    def put(self, chain: Chain) -> None:
        """Validate and atomically replace the stored copy of ``chain``."""
        check_chain_invariants(chain)
        with self._session("save thought chain") as db:
            db.query(ThoughtStepRecord).filter(
                ThoughtStepRecord.chain_id == chain.id
            ).delete(synchronize_session=False)

            record = db.get(ThoughtChainRecord, chain.id)
            if record is None:
                record = ThoughtChainRecord(id=chain.id)
                db.add(record)
            record.created = chain.created
            record.updated = chain.updated
            record.concluded = chain.concluded
            record.status = chain.status
            db.flush()

            db.add_all([
                ThoughtStepRecord(
                    chain_id=chain.id,
                    step_number=step.id,
                    thought=step.thought,
                    reflection=step.reflection,
                    timestamp=step.timestamp,
                    is_conclusion=step.is_conclusion,
                )
                for step in chain.steps
            ])
            db.commit()
        logger.debug("chain_saved", extra={"chain_id": chain.id, "step_count": len(chain.steps)})

    def get(self, chain_id: str) -> Optional[Chain]:
        with self._session("load thought chain") as db:
            record = self._chains_query(db).filter(ThoughtChainRecord.id == chain_id).first()
            if record is None:
                return None
            return _chain_from_record(record)

    def list_recent(self, limit: int) -> list[Chain]:
        with self._session("list thought chains") as db:
            records = (
                self._chains_query(db)
                .order_by(ThoughtChainRecord.created.desc())
                .limit(limit)
                .all()
            )
            return [_chain_from_record(record) for record in records]

    def search(self, term: Optional[str], limit: int) -> list[Chain]:
        """Case-insensitive substring search over step thoughts and reflections."""
        if not term or not term.strip():
            return self.list_recent(limit)

        needle = term.lower()
        matching_ids = (
            select(ThoughtStepRecord.chain_id)
            .where(
                or_(
                    func.lower(ThoughtStepRecord.thought).contains(needle, autoescape=True),
                    func.lower(ThoughtStepRecord.reflection).contains(needle, autoescape=True),
                )
            )
            .distinct()
        )
        with self._session("search thought chains") as db:
            records = (
                self._chains_query(db)
                .filter(ThoughtChainRecord.id.in_(matching_ids))
                .order_by(ThoughtChainRecord.created.desc())
                .limit(limit)
                .all()
            )
            return [_chain_from_record(record) for record in records]

    def most_recent_active(self) -> Optional[Chain]:
        with self._session("load active thought chain") as db:
            record = (
                self._chains_query(db)
                .filter(ThoughtChainRecord.status == ChainStatus.active.value)
                .order_by(ThoughtChainRecord.created.desc())
                .first()
            )
            if record is None:
                return None
            return _chain_from_record(record)

    def stats(self) -> ChainStats:
        with self._session("read statistics") as db:
            total_chains = db.query(func.count(ThoughtChainRecord.id)).scalar() or 0
            total_steps = db.query(func.count(ThoughtStepRecord.id)).scalar() or 0
            active_chains = (
                db.query(func.count(ThoughtChainRecord.id))
                .filter(ThoughtChainRecord.status == ChainStatus.active.value)
                .scalar()
                or 0
            )
        return ChainStats(
            total_chains=total_chains,
            total_steps=total_steps,
            active_chains=active_chains,
            storage_location=self.location,
        )

    def close(self) -> None:
        """Release pooled connections; every save has already been committed."""
        if self._closed:
            return
        self._engine.dispose()
        self._closed = True
        logger.info("Database closed")


__all__ = ["ChainStats", "ChainStore"]
