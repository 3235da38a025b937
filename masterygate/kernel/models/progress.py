"""
Concept progress and mastery achievement models.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from masterygate.kernel.models.base import Base, TimestampMixin, generate_uuid


class ConceptProgressState(Base, TimestampMixin):
    """Rolling statistics of one learner on one concept."""

    __tablename__ = "concept_progress"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    concept_id: Mapped[str] = mapped_column(String(128), nullable=False)

    total_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assessment_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assessment_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rolling_average_attempts: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rolling_average_time_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_time_spent_ms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Bounded windows, oldest first
    reasoning_score_history: Mapped[List[float]] = mapped_column(JSON, nullable=False, default=list)
    recent_outcomes: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    accuracy_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    consistency_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reasoning_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    retention_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    retention_known: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    application_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    mastery_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_mastery_check_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_review_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_interval_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mastered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("learner_id", "concept_id", name="uq_concept_progress_learner_concept"),
    )


class MasteryAchievementLog(Base):
    """First time a concept qualified as mastered. Written once."""

    __tablename__ = "mastery_achievements"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    concept_id: Mapped[str] = mapped_column(String(128), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    scores: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    attempts_required: Mapped[int] = mapped_column(Integer, nullable=False)
    time_to_mastery_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("learner_id", "concept_id", name="uq_mastery_achievements_learner_concept"),
    )
