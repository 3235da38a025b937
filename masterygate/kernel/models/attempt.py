"""
Attempt log - append-only record of every scored attempt.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from masterygate.kernel.models.base import Base, generate_uuid


class AttemptLog(Base):
    """
    One submitted attempt.

    Rows are inserted once and never updated.
    """

    __tablename__ = "attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    concept_id: Mapped[str] = mapped_column(String(128), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    attempts_used: Mapped[int] = mapped_column(Integer, nullable=False)
    time_spent_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reasoning_text: Mapped[str] = mapped_column(Text, nullable=False)
    reasoning_score: Mapped[float] = mapped_column(Float, nullable=False)
    context: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_attempts_learner_concept_time", "learner_id", "concept_id", "timestamp"),
        Index("ix_attempts_learner_time", "learner_id", "timestamp"),
    )
