"""
Learning store contract.

Attempts, achievements and decisions are append-only: implementations must
reject a second append of the same record. Writes become durable on
commit(); an operation is acknowledged to the caller only after commit()
returns. Every failure surfaces as StorageError.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from masterygate.kernel.records import (
    Attempt,
    BlockedAttemptCounter,
    ConceptProgress,
    LearnerProfile,
    MasteryAchievement,
    ProgressionDecision,
)


class LearningStore(ABC):
    """Persistence for learners, progress, attempts, achievements and decisions."""

    # Learners

    @abstractmethod
    async def get_learner(self, learner_id: str) -> Optional[LearnerProfile]:
        ...

    @abstractmethod
    async def save_learner(self, learner: LearnerProfile) -> None:
        ...

    # Concept progress

    @abstractmethod
    async def load_progress(self, learner_id: str, concept_id: str) -> Optional[ConceptProgress]:
        ...

    @abstractmethod
    async def list_progress(self, learner_id: str) -> List[ConceptProgress]:
        ...

    @abstractmethod
    async def save_progress(self, progress: ConceptProgress) -> None:
        ...

    # Append-only logs

    @abstractmethod
    async def append_attempt(self, attempt: Attempt) -> None:
        ...

    @abstractmethod
    async def list_attempts(
        self,
        learner_id: str,
        concept_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Attempt]:
        """Attempts in chronological order."""

    @abstractmethod
    async def append_achievement(self, achievement: MasteryAchievement) -> None:
        ...

    @abstractmethod
    async def get_achievement(self, learner_id: str, concept_id: str) -> Optional[MasteryAchievement]:
        ...

    @abstractmethod
    async def list_achievements(self, learner_id: str) -> List[MasteryAchievement]:
        ...

    @abstractmethod
    async def append_decision(self, decision: ProgressionDecision) -> None:
        ...

    @abstractmethod
    async def get_decision(self, decision_id: uuid.UUID) -> Optional[ProgressionDecision]:
        ...

    @abstractmethod
    async def list_decisions(
        self,
        learner_id: str,
        target_level: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[ProgressionDecision]:
        """Decisions in chronological order."""

    # Cooldown counters

    @abstractmethod
    async def load_block_counter(self, learner_id: str, target_level: int) -> Optional[BlockedAttemptCounter]:
        ...

    @abstractmethod
    async def save_block_counter(self, counter: BlockedAttemptCounter) -> None:
        ...

    # Unit of work

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
