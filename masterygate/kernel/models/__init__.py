"""
Kernel Data Models

SQLAlchemy models backing the SQL learning store.
"""

from masterygate.kernel.models.base import Base, TimestampMixin, generate_uuid
from masterygate.kernel.models.learner import Learner
from masterygate.kernel.models.attempt import AttemptLog
from masterygate.kernel.models.progress import ConceptProgressState, MasteryAchievementLog
from masterygate.kernel.models.progression import BlockedAttemptCounterState, ProgressionDecisionLog

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # Learners
    "Learner",
    # Attempts
    "AttemptLog",
    # Progress
    "ConceptProgressState",
    "MasteryAchievementLog",
    # Progression
    "ProgressionDecisionLog",
    "BlockedAttemptCounterState",
]
