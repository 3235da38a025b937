"""
SQL learning store (SQLAlchemy 2.0 async).

One instance wraps one AsyncSession; the caller owns the session's
lifecycle. Any SQLAlchemy failure is raised as StorageError.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from masterygate.kernel.errors import StorageError
from masterygate.kernel.models import (
    AttemptLog,
    BlockedAttemptCounterState,
    ConceptProgressState,
    Learner,
    MasteryAchievementLog,
    ProgressionDecisionLog,
)
from masterygate.kernel.records import (
    Attempt,
    AttemptContext,
    BlockedAttemptCounter,
    ConceptProgress,
    DecisionOutcome,
    DimensionScores,
    GateFinding,
    GateStage,
    LearnerProfile,
    MasteryAchievement,
    ProgressionDecision,
    RecentOutcome,
)
from masterygate.kernel.storage.contract import LearningStore
from masterygate.logging_config import get_logger

logger = get_logger(__name__)

# Scalar columns shared 1:1 between ConceptProgress and ConceptProgressState
_PROGRESS_FIELDS = (
    "total_attempts",
    "correct_attempts",
    "assessment_attempts",
    "assessment_correct",
    "rolling_average_attempts",
    "rolling_average_time_ms",
    "total_time_spent_ms",
    "reasoning_score_history",
    "accuracy_score",
    "consistency_score",
    "reasoning_score",
    "retention_score",
    "retention_known",
    "application_score",
    "mastery_score",
    "difficulty_level",
    "first_seen_at",
    "last_attempt_at",
    "last_mastery_check_at",
    "next_review_due_at",
    "review_interval_days",
    "mastered_at",
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enum_val(e: Any) -> str:
    return e.value if hasattr(e, "value") else str(e)


class SqlLearningStore(LearningStore):
    """
    Usage:
        async with async_session_maker() as session:
            store = SqlLearningStore(session)
            await store.append_attempt(attempt)
            await store.commit()
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Storage operation failed", extra={"action": action, "error": str(exc)})
            raise StorageError(f"Failed to {action}") from exc

    # ── Learners ────────────────────────────────────────────────────────

    @staticmethod
    def _learner_from_row(row: Learner) -> LearnerProfile:
        return LearnerProfile(
            learner_id=row.learner_id,
            current_level=row.current_level,
            last_learning_session_at=_as_utc(row.last_learning_session_at),
            created_at=_as_utc(row.created_at),
        )

    async def get_learner(self, learner_id: str) -> Optional[LearnerProfile]:
        async with self._guard("load learner"):
            row = await self.session.get(Learner, learner_id)
            return self._learner_from_row(row) if row else None

    async def save_learner(self, learner: LearnerProfile) -> None:
        async with self._guard("save learner"):
            row = await self.session.get(Learner, learner.learner_id)
            if row is None:
                row = Learner(learner_id=learner.learner_id)
                self.session.add(row)
            row.current_level = learner.current_level
            row.last_learning_session_at = learner.last_learning_session_at
            await self.session.flush()

    # ── Concept progress ────────────────────────────────────────────────

    @staticmethod
    def _progress_from_row(row: ConceptProgressState) -> ConceptProgress:
        data: Dict[str, Any] = {name: getattr(row, name) for name in _PROGRESS_FIELDS}
        for name in ("first_seen_at", "last_attempt_at", "last_mastery_check_at",
                     "next_review_due_at", "mastered_at"):
            data[name] = _as_utc(data[name])
        data["reasoning_score_history"] = list(row.reasoning_score_history or [])
        data["recent_outcomes"] = [
            RecentOutcome(
                timestamp=_as_utc(datetime.fromisoformat(item["timestamp"])),
                correct=item["correct"],
                context=AttemptContext(item["context"]),
            )
            for item in (row.recent_outcomes or [])
        ]
        return ConceptProgress(learner_id=row.learner_id, concept_id=row.concept_id, **data)

    async def _progress_row(self, learner_id: str, concept_id: str) -> Optional[ConceptProgressState]:
        q = select(ConceptProgressState).where(
            ConceptProgressState.learner_id == learner_id,
            ConceptProgressState.concept_id == concept_id,
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def load_progress(self, learner_id: str, concept_id: str) -> Optional[ConceptProgress]:
        async with self._guard("load concept progress"):
            row = await self._progress_row(learner_id, concept_id)
            return self._progress_from_row(row) if row else None

    async def list_progress(self, learner_id: str) -> List[ConceptProgress]:
        async with self._guard("list concept progress"):
            q = (
                select(ConceptProgressState)
                .where(ConceptProgressState.learner_id == learner_id)
                .order_by(ConceptProgressState.concept_id)
            )
            result = await self.session.execute(q)
            return [self._progress_from_row(row) for row in result.scalars().all()]

    async def save_progress(self, progress: ConceptProgress) -> None:
        async with self._guard("save concept progress"):
            row = await self._progress_row(progress.learner_id, progress.concept_id)
            if row is None:
                row = ConceptProgressState(
                    learner_id=progress.learner_id,
                    concept_id=progress.concept_id,
                )
                self.session.add(row)
            for name in _PROGRESS_FIELDS:
                setattr(row, name, getattr(progress, name))
            row.reasoning_score_history = list(progress.reasoning_score_history)
            row.recent_outcomes = [
                {
                    "timestamp": o.timestamp.isoformat(),
                    "correct": o.correct,
                    "context": _enum_val(o.context),
                }
                for o in progress.recent_outcomes
            ]
            await self.session.flush()

    # ── Attempts ────────────────────────────────────────────────────────

    @staticmethod
    def _attempt_from_row(row: AttemptLog) -> Attempt:
        return Attempt(
            id=row.id,
            timestamp=_as_utc(row.timestamp),
            learner_id=row.learner_id,
            concept_id=row.concept_id,
            correct=row.correct,
            attempts_used=row.attempts_used,
            time_spent_ms=row.time_spent_ms,
            reasoning_text=row.reasoning_text,
            reasoning_score=row.reasoning_score,
            context=AttemptContext(row.context),
        )

    async def append_attempt(self, attempt: Attempt) -> None:
        async with self._guard("append attempt"):
            self.session.add(AttemptLog(
                id=attempt.id,
                learner_id=attempt.learner_id,
                concept_id=attempt.concept_id,
                timestamp=attempt.timestamp,
                correct=attempt.correct,
                attempts_used=attempt.attempts_used,
                time_spent_ms=attempt.time_spent_ms,
                reasoning_text=attempt.reasoning_text,
                reasoning_score=attempt.reasoning_score,
                context=_enum_val(attempt.context),
            ))
            await self.session.flush()

    async def list_attempts(
        self,
        learner_id: str,
        concept_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Attempt]:
        async with self._guard("list attempts"):
            q = select(AttemptLog).where(AttemptLog.learner_id == learner_id)
            if concept_id is not None:
                q = q.where(AttemptLog.concept_id == concept_id)
            if since is not None:
                q = q.where(AttemptLog.timestamp >= since)
            q = q.order_by(AttemptLog.timestamp)
            result = await self.session.execute(q)
            return [self._attempt_from_row(row) for row in result.scalars().all()]

    # ── Achievements ────────────────────────────────────────────────────

    @staticmethod
    def _achievement_from_row(row: MasteryAchievementLog) -> MasteryAchievement:
        return MasteryAchievement(
            id=row.id,
            learner_id=row.learner_id,
            concept_id=row.concept_id,
            timestamp=_as_utc(row.timestamp),
            scores=DimensionScores.model_validate(row.scores),
            overall_score=row.overall_score,
            attempts_required=row.attempts_required,
            time_to_mastery_ms=row.time_to_mastery_ms,
        )

    async def append_achievement(self, achievement: MasteryAchievement) -> None:
        async with self._guard("append mastery achievement"):
            self.session.add(MasteryAchievementLog(
                id=achievement.id,
                learner_id=achievement.learner_id,
                concept_id=achievement.concept_id,
                timestamp=achievement.timestamp,
                scores=achievement.scores.model_dump(),
                overall_score=achievement.overall_score,
                attempts_required=achievement.attempts_required,
                time_to_mastery_ms=achievement.time_to_mastery_ms,
            ))
            await self.session.flush()

    async def get_achievement(self, learner_id: str, concept_id: str) -> Optional[MasteryAchievement]:
        async with self._guard("load mastery achievement"):
            q = select(MasteryAchievementLog).where(
                MasteryAchievementLog.learner_id == learner_id,
                MasteryAchievementLog.concept_id == concept_id,
            )
            result = await self.session.execute(q)
            row = result.scalar_one_or_none()
            return self._achievement_from_row(row) if row else None

    async def list_achievements(self, learner_id: str) -> List[MasteryAchievement]:
        async with self._guard("list mastery achievements"):
            q = (
                select(MasteryAchievementLog)
                .where(MasteryAchievementLog.learner_id == learner_id)
                .order_by(MasteryAchievementLog.timestamp)
            )
            result = await self.session.execute(q)
            return [self._achievement_from_row(row) for row in result.scalars().all()]

    # ── Decisions ───────────────────────────────────────────────────────

    @staticmethod
    def _decision_from_row(row: ProgressionDecisionLog) -> ProgressionDecision:
        return ProgressionDecision(
            id=row.id,
            learner_id=row.learner_id,
            current_level=row.current_level,
            target_level=row.target_level,
            timestamp=_as_utc(row.timestamp),
            outcome=DecisionOutcome(row.outcome),
            stage=GateStage(row.stage),
            reason=row.reason,
            evidence=dict(row.evidence or {}),
            missing_requirements=[GateFinding.model_validate(f) for f in (row.missing_requirements or [])],
            blockers=[GateFinding.model_validate(f) for f in (row.blockers or [])],
        )

    async def append_decision(self, decision: ProgressionDecision) -> None:
        async with self._guard("append progression decision"):
            self.session.add(ProgressionDecisionLog(
                id=decision.id,
                learner_id=decision.learner_id,
                current_level=decision.current_level,
                target_level=decision.target_level,
                timestamp=decision.timestamp,
                outcome=_enum_val(decision.outcome),
                stage=_enum_val(decision.stage),
                reason=decision.reason,
                evidence=decision.evidence,
                missing_requirements=[f.model_dump(mode="json") for f in decision.missing_requirements],
                blockers=[f.model_dump(mode="json") for f in decision.blockers],
            ))
            await self.session.flush()

    async def get_decision(self, decision_id: uuid.UUID) -> Optional[ProgressionDecision]:
        async with self._guard("load progression decision"):
            row = await self.session.get(ProgressionDecisionLog, decision_id)
            return self._decision_from_row(row) if row else None

    async def list_decisions(
        self,
        learner_id: str,
        target_level: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[ProgressionDecision]:
        async with self._guard("list progression decisions"):
            q = select(ProgressionDecisionLog).where(ProgressionDecisionLog.learner_id == learner_id)
            if target_level is not None:
                q = q.where(ProgressionDecisionLog.target_level == target_level)
            if since is not None:
                q = q.where(ProgressionDecisionLog.timestamp >= since)
            q = q.order_by(ProgressionDecisionLog.timestamp)
            result = await self.session.execute(q)
            return [self._decision_from_row(row) for row in result.scalars().all()]

    # ── Cooldown counters ───────────────────────────────────────────────

    async def _counter_row(self, learner_id: str, target_level: int) -> Optional[BlockedAttemptCounterState]:
        q = select(BlockedAttemptCounterState).where(
            BlockedAttemptCounterState.learner_id == learner_id,
            BlockedAttemptCounterState.target_level == target_level,
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def load_block_counter(self, learner_id: str, target_level: int) -> Optional[BlockedAttemptCounter]:
        async with self._guard("load cooldown counter"):
            row = await self._counter_row(learner_id, target_level)
            if row is None:
                return None
            return BlockedAttemptCounter(
                learner_id=row.learner_id,
                target_level=row.target_level,
                block_timestamps=[_as_utc(datetime.fromisoformat(t)) for t in (row.block_timestamps or [])],
                last_attempt_at=_as_utc(row.last_attempt_at),
            )

    async def save_block_counter(self, counter: BlockedAttemptCounter) -> None:
        async with self._guard("save cooldown counter"):
            row = await self._counter_row(counter.learner_id, counter.target_level)
            if row is None:
                row = BlockedAttemptCounterState(
                    learner_id=counter.learner_id,
                    target_level=counter.target_level,
                )
                self.session.add(row)
            row.block_timestamps = [t.isoformat() for t in counter.block_timestamps]
            row.last_attempt_at = counter.last_attempt_at
            await self.session.flush()

    # ── Unit of work ────────────────────────────────────────────────────

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        async with self._guard("rollback"):
            await self.session.rollback()
