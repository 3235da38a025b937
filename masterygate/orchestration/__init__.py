"""Orchestration layer - the learning service and per-learner locking."""

from masterygate.orchestration.learning_service import (
    AttemptResult,
    LearningService,
    ProgressionResult,
    utc_now,
)
from masterygate.orchestration.locks import LearnerLockRegistry

__all__ = [
    "AttemptResult",
    "LearnerLockRegistry",
    "LearningService",
    "ProgressionResult",
    "utc_now",
]
