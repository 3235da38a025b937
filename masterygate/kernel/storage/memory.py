"""
In-memory learning store.

Writes are staged on a working copy and published by commit(); rollback()
discards them. Intended for tests and single-process development on one
event loop.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from masterygate.kernel.errors import StorageError
from masterygate.kernel.records import (
    Attempt,
    BlockedAttemptCounter,
    ConceptProgress,
    LearnerProfile,
    MasteryAchievement,
    ProgressionDecision,
)
from masterygate.kernel.storage.contract import LearningStore


class _State:
    def __init__(self) -> None:
        self.learners: Dict[str, LearnerProfile] = {}
        self.progress: Dict[Tuple[str, str], ConceptProgress] = {}
        self.attempts: Dict[str, List[Attempt]] = {}
        self.achievements: Dict[Tuple[str, str], MasteryAchievement] = {}
        self.decisions: Dict[str, List[ProgressionDecision]] = {}
        self.counters: Dict[Tuple[str, int], BlockedAttemptCounter] = {}
        self.record_ids: Set[uuid.UUID] = set()

    def copy(self) -> "_State":
        clone = _State()
        clone.learners = dict(self.learners)
        clone.progress = dict(self.progress)
        clone.attempts = {k: list(v) for k, v in self.attempts.items()}
        clone.achievements = dict(self.achievements)
        clone.decisions = {k: list(v) for k, v in self.decisions.items()}
        clone.counters = dict(self.counters)
        clone.record_ids = set(self.record_ids)
        return clone


class InMemoryLearningStore(LearningStore):
    """Dictionary-backed store with commit/rollback semantics."""

    def __init__(self) -> None:
        self._committed = _State()
        self._working: Optional[_State] = None

    @property
    def _read(self) -> _State:
        return self._working or self._committed

    @property
    def _write(self) -> _State:
        if self._working is None:
            self._working = self._committed.copy()
        return self._working

    def _claim_id(self, record_id: uuid.UUID, kind: str) -> None:
        state = self._write
        if record_id in state.record_ids:
            raise StorageError(f"{kind} {record_id} already recorded")
        state.record_ids.add(record_id)

    # Learners

    async def get_learner(self, learner_id: str) -> Optional[LearnerProfile]:
        return self._read.learners.get(learner_id)

    async def save_learner(self, learner: LearnerProfile) -> None:
        self._write.learners[learner.learner_id] = learner

    # Concept progress

    async def load_progress(self, learner_id: str, concept_id: str) -> Optional[ConceptProgress]:
        return self._read.progress.get((learner_id, concept_id))

    async def list_progress(self, learner_id: str) -> List[ConceptProgress]:
        items = [p for (lid, _), p in self._read.progress.items() if lid == learner_id]
        return sorted(items, key=lambda p: p.concept_id)

    async def save_progress(self, progress: ConceptProgress) -> None:
        self._write.progress[(progress.learner_id, progress.concept_id)] = progress

    # Attempts

    async def append_attempt(self, attempt: Attempt) -> None:
        self._claim_id(attempt.id, "Attempt")
        self._write.attempts.setdefault(attempt.learner_id, []).append(attempt)

    async def list_attempts(
        self,
        learner_id: str,
        concept_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Attempt]:
        items = [
            a for a in self._read.attempts.get(learner_id, [])
            if (concept_id is None or a.concept_id == concept_id)
            and (since is None or a.timestamp >= since)
        ]
        return sorted(items, key=lambda a: a.timestamp)

    # Achievements

    async def append_achievement(self, achievement: MasteryAchievement) -> None:
        key = (achievement.learner_id, achievement.concept_id)
        if key in self._read.achievements:
            raise StorageError(
                f"Mastery of {achievement.concept_id} already recorded for {achievement.learner_id}"
            )
        self._claim_id(achievement.id, "Achievement")
        self._write.achievements[key] = achievement

    async def get_achievement(self, learner_id: str, concept_id: str) -> Optional[MasteryAchievement]:
        return self._read.achievements.get((learner_id, concept_id))

    async def list_achievements(self, learner_id: str) -> List[MasteryAchievement]:
        items = [a for (lid, _), a in self._read.achievements.items() if lid == learner_id]
        return sorted(items, key=lambda a: a.timestamp)

    # Decisions

    async def append_decision(self, decision: ProgressionDecision) -> None:
        self._claim_id(decision.id, "Decision")
        self._write.decisions.setdefault(decision.learner_id, []).append(decision)

    async def get_decision(self, decision_id: uuid.UUID) -> Optional[ProgressionDecision]:
        for decisions in self._read.decisions.values():
            for decision in decisions:
                if decision.id == decision_id:
                    return decision
        return None

    async def list_decisions(
        self,
        learner_id: str,
        target_level: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[ProgressionDecision]:
        items = [
            d for d in self._read.decisions.get(learner_id, [])
            if (target_level is None or d.target_level == target_level)
            and (since is None or d.timestamp >= since)
        ]
        return sorted(items, key=lambda d: d.timestamp)

    # Cooldown counters

    async def load_block_counter(self, learner_id: str, target_level: int) -> Optional[BlockedAttemptCounter]:
        return self._read.counters.get((learner_id, target_level))

    async def save_block_counter(self, counter: BlockedAttemptCounter) -> None:
        self._write.counters[(counter.learner_id, counter.target_level)] = counter

    # Unit of work

    async def commit(self) -> None:
        if self._working is not None:
            self._committed = self._working
            self._working = None

    async def rollback(self) -> None:
        self._working = None
