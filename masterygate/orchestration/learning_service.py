"""
Learning Service - the public operations of the mastery engine.

- submit_attempt: validate, analyze the reasoning, fold the attempt into
  concept progress, rescore mastery, schedule the next review, persist
- evaluate_progression: run the progression gate and record the decision
- get_due_reviews: concepts whose review time has passed, by priority

Every operation runs under the learner's lock and commits its writes
before returning.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from masterygate.engines.mastery.aggregator import ConceptProgressAggregator
from masterygate.engines.mastery.analytics import PerformanceAnalytics, PerformanceAnalyzer
from masterygate.engines.mastery.scheduler import ReviewItem, SpacedRepetitionScheduler
from masterygate.engines.mastery.scorer import MasteryEvaluation, MasteryScorer
from masterygate.engines.policy import ScoringPolicy
from masterygate.engines.progression.challenge import ChallengeAssessor
from masterygate.engines.progression.gate import LearnerSnapshot, ProgressionGate
from masterygate.engines.progression.recommendations import advise
from masterygate.engines.progression.requirements import LevelRequirementTable
from masterygate.engines.reasoning.analyzer import (
    HeuristicReasoningAnalyzer,
    QuestionContext,
    ReasoningAnalyzer,
    ReasoningAssessment,
)
from masterygate.kernel.catalog import Concept, ConceptCatalog
from masterygate.kernel.errors import AttemptValidationError, EvaluationError, MasteryGateError
from masterygate.kernel.records import (
    Attempt,
    AttemptContext,
    BlockedAttemptCounter,
    ConceptProgress,
    GateFinding,
    GateStage,
    LearnerProfile,
    ProgressionDecision,
)
from masterygate.kernel.storage.contract import LearningStore
from masterygate.logging_config import get_logger
from masterygate.orchestration.locks import LearnerLockRegistry

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AttemptResult(BaseModel):
    """What the learner gets back after submitting an attempt."""

    attempt_id: uuid.UUID
    learner_id: str
    concept_id: str

    reasoning_score: float
    is_reasoning_valid: bool
    concept_mastery_score: float
    is_concept_mastered: bool
    mastery_achieved: bool

    feedback: str
    suggestions: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    criteria: Dict[str, float] = Field(default_factory=dict)

    next_review_due_at: Optional[datetime] = None


class ProgressionResult(BaseModel):
    """Outcome of one advancement request."""

    decision_id: uuid.UUID
    can_progress: bool
    reason: str
    stage: GateStage
    current_level: int
    target_level: int

    requirements: List[GateFinding] = Field(default_factory=list)
    blockers: List[GateFinding] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    timeline: str = ""
    evidence: Dict[str, Any] = Field(default_factory=dict)


class LearningService:
    """
    Usage:
        service = LearningService(store, catalog, requirements)
        result = await service.submit_attempt(
            "learner-1", "basic-arithmetic", correct=True, attempts_used=1,
            time_spent_ms=45000, reasoning_text="First I add ...",
        )
        decision = await service.evaluate_progression("learner-1", 2)
    """

    def __init__(
        self,
        store: LearningStore,
        catalog: Optional[ConceptCatalog] = None,
        requirements: Optional[LevelRequirementTable] = None,
        policy: Optional[ScoringPolicy] = None,
        analyzer: Optional[ReasoningAnalyzer] = None,
        locks: Optional[LearnerLockRegistry] = None,
        clock: Optional[Clock] = None,
        challenge: Optional[ChallengeAssessor] = None,
    ):
        self.store = store
        self.catalog = catalog or ConceptCatalog.default()
        self.requirements = requirements or LevelRequirementTable.default()
        self.policy = policy or ScoringPolicy()
        self.analyzer = analyzer or HeuristicReasoningAnalyzer(
            minimums=self.policy.reasoning_minimums,
            weights=self.policy.reasoning_weights,
            min_length=self.policy.min_reasoning_length,
            strength_threshold=self.policy.strength_threshold,
        )
        self.locks = locks or LearnerLockRegistry()
        self.clock = clock or utc_now

        self.aggregator = ConceptProgressAggregator(self.policy)
        self.scorer = MasteryScorer(self.policy)
        self.scheduler = SpacedRepetitionScheduler(self.policy)
        self.analytics = PerformanceAnalyzer(self.policy)
        self.gate = ProgressionGate(
            self.catalog, self.requirements, self.policy, self.scorer, challenge
        )

    # ── submitAttempt ───────────────────────────────────────────────────

    async def submit_attempt(
        self,
        learner_id: str,
        concept_id: str,
        correct: bool,
        attempts_used: int,
        time_spent_ms: int,
        reasoning_text: Optional[str],
        context: Union[AttemptContext, str] = AttemptContext.PRACTICE,
        question: Optional[QuestionContext] = None,
        answer: Optional[Any] = None,
    ) -> AttemptResult:
        """
        Score and record one attempt.

        Raises:
            AttemptValidationError: malformed input, nothing is stored
            EvaluationError: the analyzer or scorer failed, nothing is stored
            StorageError: the attempt could not be persisted
        """
        concept, context = self._validate_attempt(
            learner_id, concept_id, attempts_used, time_spent_ms, reasoning_text, context
        )

        async with self.locks.hold(learner_id):
            try:
                return await self._submit(
                    learner_id, concept, correct, attempts_used, time_spent_ms,
                    reasoning_text, context, question, answer,
                )
            except Exception:
                await self.store.rollback()
                raise

    def _validate_attempt(
        self,
        learner_id: str,
        concept_id: str,
        attempts_used: int,
        time_spent_ms: int,
        reasoning_text: Optional[str],
        context: Union[AttemptContext, str],
    ) -> Tuple[Concept, AttemptContext]:
        self._require_learner_id(learner_id)
        concept = self.catalog.get_concept(concept_id)
        if concept is None:
            raise AttemptValidationError(f"Unknown concept: {concept_id}", field="concept_id")
        if reasoning_text is None or not reasoning_text.strip():
            raise AttemptValidationError("Reasoning text is required", field="reasoning_text")
        if time_spent_ms < 0:
            raise AttemptValidationError("Time spent cannot be negative", field="time_spent_ms")
        if attempts_used < 1:
            raise AttemptValidationError("At least one attempt must be used", field="attempts_used")
        try:
            context = AttemptContext(context)
        except ValueError as exc:
            raise AttemptValidationError(f"Unknown attempt context: {context}", field="context") from exc
        return concept, context

    @staticmethod
    def _require_learner_id(learner_id: str) -> None:
        if not learner_id or not learner_id.strip():
            raise AttemptValidationError("Learner id is required", field="learner_id")

    async def _submit(
        self,
        learner_id: str,
        concept: Concept,
        correct: bool,
        attempts_used: int,
        time_spent_ms: int,
        reasoning_text: str,
        context: AttemptContext,
        question: Optional[QuestionContext],
        answer: Optional[Any],
    ) -> AttemptResult:
        now = self.clock()
        learner = await self._load_learner(learner_id, now)
        progress = await self.store.load_progress(learner_id, concept.id)

        assessment = self._analyze(reasoning_text, question or self.question_for(concept), answer, correct)
        attempt = Attempt(
            timestamp=now,
            learner_id=learner_id,
            concept_id=concept.id,
            correct=correct,
            attempts_used=attempts_used,
            time_spent_ms=time_spent_ms,
            reasoning_text=reasoning_text,
            reasoning_score=assessment.score,
            context=context,
        )
        evaluation = self._score(progress, attempt, concept, now)
        updated = self.scheduler.schedule(evaluation.progress, correct, evaluation.mastered_now, now)

        await self.store.append_attempt(attempt)
        if evaluation.achievement is not None:
            await self.store.append_achievement(evaluation.achievement)
        await self.store.save_progress(updated)
        if context != AttemptContext.REVIEW:
            learner = learner.model_copy(update={"last_learning_session_at": now})
        await self.store.save_learner(learner)
        await self.store.commit()

        logger.info(
            "Attempt scored",
            extra={
                "concept_id": concept.id,
                "correct": correct,
                "context": context.value,
                "reasoning_score": round(assessment.score, 4),
                "mastery_score": round(updated.mastery_score, 4),
            },
        )
        if evaluation.achievement is not None:
            logger.info(
                "Concept mastered",
                extra={
                    "concept_id": concept.id,
                    "attempts_required": evaluation.achievement.attempts_required,
                    "overall_score": round(evaluation.achievement.overall_score, 4),
                },
            )

        return AttemptResult(
            attempt_id=attempt.id,
            learner_id=learner_id,
            concept_id=concept.id,
            reasoning_score=assessment.score,
            is_reasoning_valid=assessment.is_valid,
            concept_mastery_score=updated.mastery_score,
            is_concept_mastered=updated.is_mastered,
            mastery_achieved=evaluation.mastered_now,
            feedback=assessment.feedback,
            suggestions=assessment.suggestions,
            strengths=assessment.strengths,
            improvement_areas=assessment.improvement_areas,
            criteria=assessment.criteria,
            next_review_due_at=updated.next_review_due_at,
        )

    @staticmethod
    def question_for(concept: Concept) -> QuestionContext:
        """Question context used when the caller does not supply one."""
        return QuestionContext(text=concept.name, expected_concepts=list(concept.keywords))

    def _analyze(
        self,
        reasoning_text: str,
        question: QuestionContext,
        answer: Optional[Any],
        correct: bool,
    ) -> ReasoningAssessment:
        try:
            return self.analyzer.analyze(reasoning_text, question, answer, correct)
        except MasteryGateError:
            raise
        except Exception as exc:
            logger.exception("Reasoning analysis failed")
            raise EvaluationError("Reasoning analysis failed") from exc

    def _score(
        self,
        progress: Optional[ConceptProgress],
        attempt: Attempt,
        concept: Concept,
        now: datetime,
    ) -> MasteryEvaluation:
        try:
            updated = self.aggregator.apply(progress, attempt, concept.difficulty)
            return self.scorer.evaluate(updated, now)
        except MasteryGateError:
            raise
        except Exception as exc:
            logger.exception("Mastery scoring failed", extra={"concept_id": concept.id})
            raise EvaluationError("Mastery scoring failed") from exc

    # ── evaluateProgression ─────────────────────────────────────────────

    async def evaluate_progression(self, learner_id: str, target_level: int) -> ProgressionResult:
        """
        Decide whether the learner may enter `target_level`.

        Exactly one ProgressionDecision is recorded per call. A BLOCK
        feeds the cooldown counter; an ALLOW promotes the learner.
        """
        self._require_learner_id(learner_id)
        async with self.locks.hold(learner_id):
            try:
                decision = await self._evaluate(learner_id, target_level)
            except Exception:
                await self.store.rollback()
                raise

        advice = advise(decision)
        return ProgressionResult(
            decision_id=decision.id,
            can_progress=decision.allowed,
            reason=decision.reason,
            stage=decision.stage,
            current_level=decision.current_level,
            target_level=decision.target_level,
            requirements=decision.missing_requirements,
            blockers=decision.blockers,
            recommendations=advice.actions,
            timeline=advice.timeline,
            evidence=decision.evidence,
        )

    async def _evaluate(self, learner_id: str, target_level: int) -> ProgressionDecision:
        now = self.clock()
        learner = await self._load_learner(learner_id, now)
        counter = await self.store.load_block_counter(learner_id, target_level)
        if counter is None:
            counter = BlockedAttemptCounter(learner_id=learner_id, target_level=target_level)

        progress = await self.store.list_progress(learner_id)
        attempts = await self.store.list_attempts(learner_id, since=now - self.gate.lookback)
        try:
            snapshot = LearnerSnapshot(
                learner=learner,
                progress={p.concept_id: p for p in progress},
                attempts=attempts,
                block_counter=counter,
                now=now,
            )
        except ValueError as exc:
            logger.exception("Learner snapshot invalid, blocking")
            decision = self.gate.error_decision(learner, target_level, now, exc)
        else:
            decision = self.gate.evaluate(snapshot, target_level)

        await self.store.append_decision(decision)
        if decision.allowed:
            await self.store.save_learner(learner.model_copy(update={"current_level": target_level}))
        else:
            window = timedelta(hours=self.policy.cooldown_window_hours)
            await self.store.save_block_counter(counter.record_block(now, window))
        await self.store.commit()

        log = logger.info if decision.allowed else logger.warning
        log(
            "Progression decision recorded",
            extra={
                "decision_id": str(decision.id),
                "current_level": decision.current_level,
                "target_level": target_level,
                "outcome": decision.outcome.value,
                "stage": decision.stage.value,
                "reason": decision.reason,
            },
        )
        return decision

    # ── getDueReviews and queries ───────────────────────────────────────

    async def get_due_reviews(self, learner_id: str) -> List[ReviewItem]:
        """Concepts due for review now, highest priority first."""
        self._require_learner_id(learner_id)
        async with self.locks.hold(learner_id):
            progresses = await self.store.list_progress(learner_id)
        return self.scheduler.due_reviews(progresses, self.clock())

    async def get_concept_progress(self, learner_id: str, concept_id: str) -> Optional[ConceptProgress]:
        self._require_learner_id(learner_id)
        async with self.locks.hold(learner_id):
            return await self.store.load_progress(learner_id, concept_id)

    async def get_learner(self, learner_id: str) -> LearnerProfile:
        self._require_learner_id(learner_id)
        async with self.locks.hold(learner_id):
            return await self._load_learner(learner_id, self.clock())

    async def get_performance_analytics(self, learner_id: str) -> PerformanceAnalytics:
        self._require_learner_id(learner_id)
        now = self.clock()
        async with self.locks.hold(learner_id):
            attempts = await self.store.list_attempts(learner_id)
            progresses = await self.store.list_progress(learner_id)
        due = self.scheduler.due_reviews(progresses, now)
        return self.analytics.build(learner_id, attempts, progresses, len(due), now)

    async def list_decisions(
        self,
        learner_id: str,
        target_level: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ProgressionDecision]:
        """Recorded decisions, newest first."""
        self._require_learner_id(learner_id)
        async with self.locks.hold(learner_id):
            decisions = await self.store.list_decisions(learner_id, target_level=target_level)
        decisions = list(reversed(decisions))
        return decisions[:limit] if limit is not None else decisions

    async def _load_learner(self, learner_id: str, now: datetime) -> LearnerProfile:
        learner = await self.store.get_learner(learner_id)
        if learner is None:
            learner = LearnerProfile(learner_id=learner_id, created_at=now)
        return learner
