"""
Performance analytics over a learner's attempts and concept progress.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from masterygate.engines.policy import ScoringPolicy
from masterygate.kernel.records import Attempt, ConceptProgress


class PerformanceOverview(BaseModel):
    total_concepts: int
    mastered_concepts: int
    mastery_percentage: float
    recent_accuracy: float
    average_attempts_per_question: float


class PerformanceTrend(BaseModel):
    period_days: int
    accuracy: float
    average_time_ms: float
    attempts: int


class ConceptStanding(BaseModel):
    concept_id: str
    mastery_score: float
    accuracy: float
    consistency: float


class PerformanceAnalytics(BaseModel):
    learner_id: str
    generated_at: datetime
    overview: PerformanceOverview
    trends: List[PerformanceTrend] = Field(default_factory=list)
    weak_areas: List[ConceptStanding] = Field(default_factory=list)
    strengths: List[ConceptStanding] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


def accuracy_of(attempts: Sequence[Attempt]) -> float:
    if not attempts:
        return 0.0
    return sum(1 for a in attempts if a.correct) / len(attempts)


def attempts_since(attempts: Iterable[Attempt], cutoff: datetime) -> List[Attempt]:
    return [a for a in attempts if a.timestamp >= cutoff]


def recent_consistency(progresses: Iterable[ConceptProgress], since: datetime) -> float:
    """Mean consistency of the concepts practiced since `since`."""
    active = [p.consistency_score for p in progresses if p.last_attempt_at >= since]
    if not active:
        return 0.0
    return sum(active) / len(active)


class PerformanceAnalyzer:
    """Builds PerformanceAnalytics from stored attempts and progress."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def build(
        self,
        learner_id: str,
        attempts: Sequence[Attempt],
        progresses: Sequence[ConceptProgress],
        due_review_count: int,
        now: datetime,
    ) -> PerformanceAnalytics:
        ordered = sorted(attempts, key=lambda a: a.timestamp)
        recent = ordered[-self.policy.analytics_recent_attempts:]

        total = len(progresses)
        mastered = sum(1 for p in progresses if p.is_mastered)
        overview = PerformanceOverview(
            total_concepts=total,
            mastered_concepts=mastered,
            mastery_percentage=mastered / total if total else 0.0,
            recent_accuracy=accuracy_of(recent),
            average_attempts_per_question=(
                sum(a.attempts_used for a in recent) / len(recent) if recent else 0.0
            ),
        )

        trends = []
        for days in self.policy.analytics_trend_days:
            window = attempts_since(ordered, now - timedelta(days=days))
            trends.append(PerformanceTrend(
                period_days=days,
                accuracy=accuracy_of(window),
                average_time_ms=(
                    sum(a.time_spent_ms for a in window) / len(window) if window else 0.0
                ),
                attempts=len(window),
            ))

        weak_areas = self.weak_areas(progresses)
        strengths = self.strengths(progresses)

        return PerformanceAnalytics(
            learner_id=learner_id,
            generated_at=now,
            overview=overview,
            trends=trends,
            weak_areas=weak_areas,
            strengths=strengths,
            recommendations=self.recommendations(overview, weak_areas, due_review_count),
        )

    def _standing(self, progress: ConceptProgress) -> ConceptStanding:
        return ConceptStanding(
            concept_id=progress.concept_id,
            mastery_score=progress.mastery_score,
            accuracy=progress.accuracy_score,
            consistency=progress.consistency_score,
        )

    def weak_areas(self, progresses: Sequence[ConceptProgress]) -> List[ConceptStanding]:
        ranked = sorted(progresses, key=lambda p: (p.mastery_score, p.concept_id))
        return [self._standing(p) for p in ranked[: self.policy.analytics_top_n]]

    def strengths(self, progresses: Sequence[ConceptProgress]) -> List[ConceptStanding]:
        threshold = self.policy.mastery_thresholds.accuracy
        strong = [p for p in progresses if p.mastery_score >= threshold]
        strong.sort(key=lambda p: (-p.mastery_score, p.concept_id))
        return [self._standing(p) for p in strong[: self.policy.analytics_top_n]]

    @staticmethod
    def recommendations(
        overview: PerformanceOverview,
        weak_areas: List[ConceptStanding],
        due_review_count: int,
    ) -> List[str]:
        recommendations = []
        if overview.recent_accuracy < 0.7:
            recommendations.append("Focus on accuracy - review fundamental concepts")
        if overview.average_attempts_per_question > 2.5:
            recommendations.append("Work on efficiency - practice quick problem recognition")
        if weak_areas:
            recommendations.append(f"Priority review needed: {weak_areas[0].concept_id}")
        if due_review_count > 0:
            recommendations.append(f"{due_review_count} concepts due for review")
        return recommendations
