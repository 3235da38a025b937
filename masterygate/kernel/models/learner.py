"""
Learner model - current level and last learning session.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from masterygate.kernel.models.base import Base, TimestampMixin


class Learner(Base, TimestampMixin):
    """One learner, keyed by the identity the caller supplies."""

    __tablename__ = "learners"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_learning_session_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
