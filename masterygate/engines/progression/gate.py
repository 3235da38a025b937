"""
Progression Gate - decides whether a learner may enter the next level.

Four ordered stages, fail-fast and fail-closed:
1. Eligibility: no skipping, no no-op, no active cooldown
2. Mastery evidence: every required concept mastered, recent accuracy
   and consistency at the global thresholds
3. Retention & application: retention period elapsed, application
   standard met, no overdue reviews
4. Strict evaluation: every dimension at its gate threshold, minimum
   attempts and time, then the challenge assessment

The gate is pure: it reads a LearnerSnapshot and returns a
ProgressionDecision. Recording the decision and updating the cooldown
counter belong to the caller. Any internal failure yields a BLOCK.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field

from masterygate.engines.mastery.analytics import attempts_since, accuracy_of, recent_consistency
from masterygate.engines.mastery.scorer import MasteryScorer
from masterygate.engines.policy import ScoringPolicy
from masterygate.engines.progression.challenge import AssessmentEvidenceChallenge, ChallengeAssessor
from masterygate.engines.progression.requirements import LevelRequirement, LevelRequirementTable
from masterygate.kernel.catalog import ConceptCatalog
from masterygate.kernel.records import (
    Attempt,
    BlockedAttemptCounter,
    ConceptProgress,
    DecisionOutcome,
    FindingKind,
    GateFinding,
    GateStage,
    LearnerProfile,
    MasteryDimension,
    ProgressionDecision,
)
from masterygate.logging_config import get_logger

logger = get_logger(__name__)

REASON_SKIP = "Cannot skip levels"
REASON_ALREADY_AT_LEVEL = "Already at or above target level"
REASON_COOLDOWN = "Active learning restrictions in place"
REASON_MASTERY = "Insufficient mastery evidence"
REASON_RETENTION = "Retention or application requirements not met"
REASON_STRICT = "Strict mastery criteria not met"
REASON_CHALLENGE = "Challenge assessment failed"
REASON_ALLOW = "All mastery requirements met"
REASON_ERROR = "evaluation error — blocked for safety"


class LearnerSnapshot(BaseModel):
    """Everything the gate reads about one learner, captured at `now`."""

    learner: LearnerProfile
    progress: Dict[str, ConceptProgress] = Field(default_factory=dict)
    # Attempts inside the longest look-back window the gate uses
    attempts: List[Attempt] = Field(default_factory=list)
    block_counter: BlockedAttemptCounter
    now: datetime


class StageBlock(BaseModel):
    """A stage's reason to stop the pipeline."""

    stage: GateStage
    reason: str
    missing: List[GateFinding] = Field(default_factory=list)
    blockers: List[GateFinding] = Field(default_factory=list)


class _Evaluation:
    """Mutable state threaded through the stages of one evaluation."""

    def __init__(self, snapshot: LearnerSnapshot, target_level: int):
        self.snapshot = snapshot
        self.target_level = target_level
        self.requirement: Optional[LevelRequirement] = None
        self.required: FrozenSet[str] = frozenset()
        self.evidence: Dict[str, Any] = {
            "current_level": snapshot.learner.current_level,
            "target_level": target_level,
            "evaluated_at": snapshot.now.isoformat(),
        }

    @property
    def now(self) -> datetime:
        return self.snapshot.now

    def scope(self) -> List[ConceptProgress]:
        """Progress of the required concepts, or of every practiced concept."""
        progress = self.snapshot.progress
        if self.required:
            return [progress[c] for c in sorted(self.required) if c in progress]
        return [progress[c] for c in sorted(progress)]


class ProgressionGate:
    """
    Usage:
        gate = ProgressionGate(catalog, requirements)
        decision = gate.evaluate(snapshot, target_level=3)
    """

    def __init__(
        self,
        catalog: ConceptCatalog,
        requirements: LevelRequirementTable,
        policy: Optional[ScoringPolicy] = None,
        scorer: Optional[MasteryScorer] = None,
        challenge: Optional[ChallengeAssessor] = None,
    ):
        self.catalog = catalog
        self.requirements = requirements
        self.policy = policy or ScoringPolicy()
        self.scorer = scorer or MasteryScorer(self.policy)
        self.challenge = challenge or AssessmentEvidenceChallenge(self.policy)
        self._stages: Tuple[Callable[[_Evaluation], Optional[StageBlock]], ...] = (
            self._check_eligibility,
            self._check_mastery_evidence,
            self._check_retention_application,
            self._check_strict_criteria,
            self._check_challenge,
        )

    @property
    def lookback(self) -> timedelta:
        """How far back the snapshot's attempts must reach."""
        return timedelta(days=max(self.policy.recent_performance_days, self.policy.challenge_window_days))

    def required_concepts(self, target_level: int, requirement: LevelRequirement) -> FrozenSet[str]:
        return frozenset(requirement.required_concepts) | self.catalog.get_required_concepts(target_level)

    def evaluate(self, snapshot: LearnerSnapshot, target_level: int) -> ProgressionDecision:
        state = _Evaluation(snapshot, target_level)
        try:
            for stage in self._stages:
                block = stage(state)
                if block is not None:
                    return self._decision(state, DecisionOutcome.BLOCK, block.stage, block.reason,
                                          block.missing, block.blockers)
            return self._decision(state, DecisionOutcome.ALLOW, GateStage.COMPLETE, REASON_ALLOW)
        except Exception as exc:
            logger.exception(
                "Progression evaluation failed, blocking",
                extra={"learner_id": snapshot.learner.learner_id, "target_level": target_level},
            )
            return self.error_decision(snapshot.learner, target_level, snapshot.now, exc)

    def error_decision(
        self,
        learner: LearnerProfile,
        target_level: int,
        now: datetime,
        exc: BaseException,
    ) -> ProgressionDecision:
        finding = GateFinding(kind=FindingKind.EVALUATION_ERROR, message=type(exc).__name__)
        return ProgressionDecision(
            learner_id=learner.learner_id,
            current_level=learner.current_level,
            target_level=target_level,
            timestamp=now,
            outcome=DecisionOutcome.BLOCK,
            stage=GateStage.ERROR,
            reason=REASON_ERROR,
            evidence={"error": type(exc).__name__},
            blockers=[finding],
        )

    def _decision(
        self,
        state: _Evaluation,
        outcome: DecisionOutcome,
        stage: GateStage,
        reason: str,
        missing: Optional[List[GateFinding]] = None,
        blockers: Optional[List[GateFinding]] = None,
    ) -> ProgressionDecision:
        learner = state.snapshot.learner
        return ProgressionDecision(
            learner_id=learner.learner_id,
            current_level=learner.current_level,
            target_level=state.target_level,
            timestamp=state.now,
            outcome=outcome,
            stage=stage,
            reason=reason,
            evidence=state.evidence,
            missing_requirements=missing or [],
            blockers=blockers or [],
        )

    # ── Stage 1 ─────────────────────────────────────────────────────────

    def _check_eligibility(self, state: _Evaluation) -> Optional[StageBlock]:
        current = state.snapshot.learner.current_level
        target = state.target_level

        if target > current + 1:
            return StageBlock(
                stage=GateStage.ELIGIBILITY,
                reason=REASON_SKIP,
                blockers=[GateFinding(
                    kind=FindingKind.LEVEL_SKIP,
                    message=f"Next available level is {current + 1}",
                    current=float(current),
                    required=float(target - 1),
                )],
            )
        if target <= current:
            return StageBlock(
                stage=GateStage.ELIGIBILITY,
                reason=REASON_ALREADY_AT_LEVEL,
                blockers=[GateFinding(
                    kind=FindingKind.ALREADY_AT_LEVEL,
                    message=f"Already at level {current}",
                    current=float(current),
                )],
            )

        window = timedelta(hours=self.policy.cooldown_window_hours)
        counter = state.snapshot.block_counter.pruned(state.now, window)
        state.evidence["recent_blocks"] = counter.count
        if counter.count >= self.policy.cooldown_block_limit:
            oldest = min(counter.block_timestamps)
            remaining = (oldest + window) - state.now
            return StageBlock(
                stage=GateStage.ELIGIBILITY,
                reason=REASON_COOLDOWN,
                blockers=[GateFinding(
                    kind=FindingKind.COOLDOWN,
                    message="Too many recent failed progression attempts",
                    count=counter.count,
                    remaining_ms=max(0, int(remaining.total_seconds() * 1000)),
                )],
            )
        return None

    # ── Stage 2 ─────────────────────────────────────────────────────────

    def _check_mastery_evidence(self, state: _Evaluation) -> Optional[StageBlock]:
        state.requirement = self.requirements.requirement_for(state.target_level)
        state.required = self.required_concepts(state.target_level, state.requirement)
        state.evidence["required_concepts"] = sorted(state.required)
        state.evidence["mastery_threshold"] = state.requirement.mastery_threshold

        missing: List[GateFinding] = []
        concept_evidence: Dict[str, Dict[str, Any]] = {}
        for concept_id in sorted(state.required):
            progress = state.snapshot.progress.get(concept_id)
            if progress is None:
                concept_evidence[concept_id] = {"attempts": 0, "mastered": False}
                missing.append(GateFinding(
                    kind=FindingKind.CONCEPT_MASTERY,
                    message=f"Complete mastery of: {concept_id}",
                    concept_id=concept_id,
                    current=0.0,
                    required=state.requirement.mastery_threshold,
                ))
                continue

            qualifies, scores, overall = self.scorer.qualifies(progress)
            mastered = qualifies and overall >= state.requirement.mastery_threshold
            concept_evidence[concept_id] = {
                "attempts": progress.total_attempts,
                "overall": round(overall, 4),
                "scores": {k: round(v, 4) for k, v in scores.as_dict().items()},
                "mastered": mastered,
            }
            if not mastered:
                missing.append(GateFinding(
                    kind=FindingKind.CONCEPT_MASTERY,
                    message=f"Complete mastery of: {concept_id}",
                    concept_id=concept_id,
                    current=overall,
                    required=max(state.requirement.mastery_threshold, self.policy.global_mastery_threshold),
                ))
        state.evidence["concepts"] = concept_evidence

        since = state.now - timedelta(days=self.policy.recent_performance_days)
        recent = attempts_since(state.snapshot.attempts, since)
        accuracy = accuracy_of(recent)
        consistency = recent_consistency(state.snapshot.progress.values(), since)
        thresholds = self.policy.mastery_thresholds
        state.evidence["recent_accuracy"] = round(accuracy, 4)
        state.evidence["recent_consistency"] = round(consistency, 4)
        state.evidence["recent_attempts"] = len(recent)

        if accuracy < thresholds.accuracy:
            missing.append(GateFinding(
                kind=FindingKind.PERFORMANCE_STANDARD,
                message="Improve overall accuracy through additional practice",
                dimension=MasteryDimension.ACCURACY,
                current=accuracy,
                required=thresholds.accuracy,
            ))
        if consistency < thresholds.consistency:
            missing.append(GateFinding(
                kind=FindingKind.CONSISTENCY_STANDARD,
                message="Demonstrate more consistent performance over time",
                dimension=MasteryDimension.CONSISTENCY,
                current=consistency,
                required=thresholds.consistency,
            ))

        if missing:
            return StageBlock(stage=GateStage.MASTERY_EVIDENCE, reason=REASON_MASTERY, missing=missing)
        return None

    # ── Stage 3 ─────────────────────────────────────────────────────────

    def _check_retention_application(self, state: _Evaluation) -> Optional[StageBlock]:
        """
        The retention wait applies at every level, whether or not the level
        requires a retention test. Application here is the mean over the
        required concepts, a coarse check ahead of the strict stage, which
        takes the per-concept minimum.
        """
        missing: List[GateFinding] = []
        blockers: List[GateFinding] = []

        last_session = state.snapshot.learner.last_learning_session_at
        if last_session is not None:
            period = timedelta(hours=self.policy.retention_period_hours)
            elapsed = state.now - last_session
            state.evidence["hours_since_last_session"] = round(elapsed.total_seconds() / 3600, 2)
            if elapsed < period:
                remaining_ms = int((period - elapsed).total_seconds() * 1000)
                hours = math.ceil(remaining_ms / 3_600_000)
                missing.append(GateFinding(
                    kind=FindingKind.RETENTION_PERIOD,
                    message=f"Wait {hours} hours for retention testing",
                    remaining_ms=remaining_ms,
                ))

        scope = state.scope()
        application = (
            sum(p.application_score for p in scope) / len(scope) if scope else 0.0
        )
        required_application = self.policy.mastery_thresholds.application
        state.evidence["application_score"] = round(application, 4)
        if application < required_application:
            missing.append(GateFinding(
                kind=FindingKind.APPLICATION_STANDARD,
                message="Apply concepts successfully in assessment contexts",
                dimension=MasteryDimension.APPLICATION,
                current=application,
                required=required_application,
            ))

        overdue = sorted(
            p.concept_id for p in state.snapshot.progress.values()
            if p.next_review_due_at is not None and p.next_review_due_at < state.now
        )
        state.evidence["overdue_reviews"] = overdue
        if overdue:
            blockers.append(GateFinding(
                kind=FindingKind.OVERDUE_REVIEWS,
                message=f"Complete {len(overdue)} overdue reviews",
                count=len(overdue),
            ))

        if missing or blockers:
            return StageBlock(
                stage=GateStage.RETENTION_APPLICATION,
                reason=REASON_RETENTION,
                missing=missing,
                blockers=blockers,
            )
        return None

    # ── Stage 4 ─────────────────────────────────────────────────────────

    def _check_strict_criteria(self, state: _Evaluation) -> Optional[StageBlock]:
        requirement = state.requirement or self.requirements.requirement_for(state.target_level)
        thresholds = self.policy.gate_thresholds
        scope = state.scope()
        fresh = [self.scorer.dimension_scores(p) for p in scope]

        missing: List[GateFinding] = []
        minimums: Dict[str, float] = {}
        for dimension in MasteryDimension:
            if dimension == MasteryDimension.RETENTION and not requirement.retention_test_required:
                continue
            value = min((s.value(dimension) for s in fresh), default=0.0)
            required = getattr(thresholds, dimension.value)
            minimums[dimension.value] = round(value, 4)
            if value < required:
                missing.append(GateFinding(
                    kind=FindingKind.DIMENSION_STANDARD,
                    message=f"Raise {dimension.value} from {value:.0%} to {required:.0%}",
                    dimension=dimension,
                    current=value,
                    required=required,
                ))
        state.evidence["dimension_minimums"] = minimums

        progress = state.snapshot.progress.values()
        total_attempts = sum(p.total_attempts for p in progress)
        total_time_ms = sum(p.total_time_spent_ms for p in progress)
        state.evidence["total_attempts"] = total_attempts
        state.evidence["total_time_spent_ms"] = total_time_ms

        if total_attempts < self.policy.min_total_attempts:
            missing.append(GateFinding(
                kind=FindingKind.MINIMUM_ATTEMPTS,
                message=f"Complete at least {self.policy.min_total_attempts} attempts",
                current=float(total_attempts),
                required=float(self.policy.min_total_attempts),
            ))
        if total_time_ms < requirement.min_time_spent_ms:
            missing.append(GateFinding(
                kind=FindingKind.MINIMUM_TIME,
                message="Spend more time practicing before advancing",
                current=float(total_time_ms),
                required=float(requirement.min_time_spent_ms),
            ))

        if missing:
            return StageBlock(stage=GateStage.STRICT_EVALUATION, reason=REASON_STRICT, missing=missing)
        return None

    def _check_challenge(self, state: _Evaluation) -> Optional[StageBlock]:
        result = self.challenge.assess(state.snapshot.attempts, state.required, state.now)
        state.evidence["challenge"] = result.evidence()
        if result.passed:
            return None
        return StageBlock(
            stage=GateStage.CHALLENGE,
            reason=REASON_CHALLENGE,
            missing=[GateFinding(kind=FindingKind.CHALLENGE, message=result.message)],
        )
