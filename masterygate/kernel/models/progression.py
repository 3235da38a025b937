"""
Progression decision log and cooldown counter models.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Index, Integer, JSON, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from masterygate.kernel.models.base import Base, TimestampMixin, generate_uuid


class ProgressionDecisionLog(Base):
    """
    Immutable audit record of one progression evaluation.

    Written for every evaluation, ALLOW or BLOCK, before the result is returned.
    """

    __tablename__ = "progression_decisions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False)
    target_level: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    stage: Mapped[str] = mapped_column(String(40), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    missing_requirements: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    blockers: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_progression_decisions_learner_level_time", "learner_id", "target_level", "timestamp"),
    )


class BlockedAttemptCounterState(Base, TimestampMixin):
    """BLOCK timestamps inside the rolling cooldown window."""

    __tablename__ = "blocked_attempt_counters"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    target_level: Mapped[int] = mapped_column(Integer, nullable=False)
    # ISO-8601 strings
    block_timestamps: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    last_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("learner_id", "target_level", name="uq_blocked_attempt_counters_learner_level"),
    )
