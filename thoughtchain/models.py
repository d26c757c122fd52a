"""
Thought chain database models.
SQLite schema: one header row per chain, one row per step.
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base

from thoughtchain.entities import ChainStatus

Base = declarative_base()


# =============================================================================
# Thought Chains
# =============================================================================

class ThoughtChainRecord(Base):
    __tablename__ = "thought_chains"

    id = Column(String(100), primary_key=True)
    # Timestamps are stored as the ISO 8601 strings the entities carry
    created = Column(Text, nullable=False)
    updated = Column(Text)
    concluded = Column(Text)
    status = Column(String(20), nullable=False, default=ChainStatus.active.value, server_default="active")

    steps = relationship(
        "ThoughtStepRecord",
        back_populates="chain",
        cascade="all, delete-orphan",
        order_by="ThoughtStepRecord.step_number",
    )

    __table_args__ = (
        Index("idx_thought_chains_created", "created"),
        Index("idx_thought_chains_status", "status"),
    )


class ThoughtStepRecord(Base):
    __tablename__ = "thought_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chain_id = Column(String(100), ForeignKey("thought_chains.id", ondelete="CASCADE"), nullable=False)
    step_number = Column(Integer, nullable=False)
    thought = Column(Text, nullable=False)
    reflection = Column(Text)
    timestamp = Column(Text, nullable=False)
    is_conclusion = Column(Boolean, nullable=False, default=False, server_default="0")

    chain = relationship("ThoughtChainRecord", back_populates="steps")

    __table_args__ = (
        UniqueConstraint("chain_id", "step_number", name="uq_thought_steps_chain_step"),
        Index("idx_thought_steps_chain_id", "chain_id"),
        Index("idx_thought_steps_timestamp", "timestamp"),
    )


__all__ = [
    "Base",
    "ThoughtChainRecord",
    "ThoughtStepRecord",
]
