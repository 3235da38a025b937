"""
Mastery Scorer - per-dimension scores, overall mastery and the mastered check.

Overall mastery = weighted sum of the five dimensions
(accuracy 30%, consistency 25%, reasoning 20%, retention 15%, application 10%).

A concept qualifies as mastered when it has enough attempts, the overall
score meets the global threshold and every known dimension meets its own
threshold. Retention and application that are still at their neutral
default are unknown, not failing: they are skipped by the per-dimension
check but still contribute their neutral value to the overall score.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from masterygate.engines.policy import ScoringPolicy
from masterygate.kernel.records import (
    ConceptProgress,
    DimensionScores,
    MasteryAchievement,
    MasteryDimension,
)


class MasteryEvaluation(BaseModel):
    """Outcome of scoring one concept."""

    progress: ConceptProgress
    scores: DimensionScores
    overall: float
    qualifies: bool
    failing_dimensions: List[MasteryDimension] = Field(default_factory=list)
    achievement: Optional[MasteryAchievement] = None

    @property
    def mastered_now(self) -> bool:
        return self.achievement is not None


class MasteryScorer:
    """Scores ConceptProgress and decides when a concept becomes mastered."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def dimension_scores(self, progress: ConceptProgress) -> DimensionScores:
        policy = self.policy
        recent = progress.recent_outcomes[-policy.accuracy_window:]
        accuracy = sum(1 for o in recent if o.correct) / len(recent) if recent else 0.0

        reasoning_window = progress.reasoning_score_history[-policy.reasoning_window:]
        reasoning = sum(reasoning_window) / len(reasoning_window) if reasoning_window else 0.0

        return DimensionScores(
            accuracy=accuracy,
            consistency=progress.consistency_score,
            reasoning=reasoning,
            retention=progress.retention_score,
            application=progress.application_score,
            retention_known=progress.retention_known,
            application_known=progress.application_known,
        )

    def overall(self, scores: DimensionScores) -> float:
        weights = self.policy.mastery_weights
        total = sum(scores.value(d) * getattr(weights, d.value) for d in MasteryDimension)
        return max(0.0, min(1.0, total))

    def failing_dimensions(self, scores: DimensionScores) -> List[MasteryDimension]:
        thresholds = self.policy.mastery_thresholds
        return [
            d for d in MasteryDimension
            if scores.is_known(d) and scores.value(d) < getattr(thresholds, d.value)
        ]

    def qualifies(self, progress: ConceptProgress) -> Tuple[bool, DimensionScores, float]:
        """Whether the current scores of `progress` qualify as mastered."""
        scores = self.dimension_scores(progress)
        overall = self.overall(scores)
        ok = (
            progress.total_attempts >= self.policy.min_attempts_for_mastery
            and overall >= self.policy.global_mastery_threshold
            and not self.failing_dimensions(scores)
        )
        return ok, scores, overall

    def evaluate(self, progress: ConceptProgress, now: datetime) -> MasteryEvaluation:
        """
        Rescore `progress` after an attempt.

        Returns the updated progress and, the first time the concept
        qualifies, the MasteryAchievement to record.
        """
        qualifies, scores, overall = self.qualifies(progress)

        achievement = None
        mastered_at = progress.mastered_at
        if qualifies and progress.mastered_at is None:
            mastered_at = now
            achievement = MasteryAchievement(
                learner_id=progress.learner_id,
                concept_id=progress.concept_id,
                timestamp=now,
                scores=scores,
                overall_score=overall,
                attempts_required=progress.total_attempts,
                time_to_mastery_ms=max(0, int((now - progress.first_seen_at).total_seconds() * 1000)),
            )

        updated = progress.model_copy(update={
            "accuracy_score": scores.accuracy,
            "reasoning_score": scores.reasoning,
            "mastery_score": overall,
            "last_mastery_check_at": now,
            "mastered_at": mastered_at,
        })
        return MasteryEvaluation(
            progress=updated,
            scores=scores,
            overall=overall,
            qualifies=qualifies,
            failing_dimensions=self.failing_dimensions(scores),
            achievement=achievement,
        )
