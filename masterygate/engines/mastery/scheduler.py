"""
Spaced Repetition Scheduler - next review time and review ordering.

Intervals (days): 1, 3, 7, 14, 30, 60.
- concept just mastered -> 30 days
- correct answer -> index min(floor(consistency * 6), 5)
- wrong answer -> 1 day
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from pydantic import BaseModel

from masterygate.engines.policy import ScoringPolicy
from masterygate.kernel.records import ConceptProgress


class ReviewItem(BaseModel):
    """A concept due for review."""

    concept_id: str
    priority: float
    overdue_ms: int
    mastery_score: float
    consistency_score: float
    next_review_due_at: datetime


class SpacedRepetitionScheduler:
    """Computes review intervals and orders due reviews."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    @property
    def intervals(self) -> List[int]:
        return self.policy.review_intervals_days

    def interval_index(self, correct: bool, consistency: float, just_mastered: bool) -> int:
        last = len(self.intervals) - 1
        if just_mastered:
            return self.policy.mastered_interval_index
        if correct:
            return max(0, min(math.floor(consistency * len(self.intervals)), last))
        return 0

    def interval_days(self, correct: bool, consistency: float, just_mastered: bool) -> int:
        return self.intervals[self.interval_index(correct, consistency, just_mastered)]

    def schedule(
        self,
        progress: ConceptProgress,
        correct: bool,
        just_mastered: bool,
        now: datetime,
    ) -> ConceptProgress:
        days = self.interval_days(correct, progress.consistency_score, just_mastered)
        return progress.model_copy(update={
            "review_interval_days": days,
            "next_review_due_at": now + timedelta(days=days),
        })

    def priority(self, progress: ConceptProgress, overdue: timedelta) -> float:
        cap = timedelta(days=self.policy.review_overdue_cap_days)
        overdue_factor = min(overdue / cap, 1.0) if cap else 1.0
        return (
            (1 - progress.mastery_score) * 0.4
            + overdue_factor * 0.3
            + (1 - progress.consistency_score) * 0.3
        )

    def due_reviews(self, progresses: Iterable[ConceptProgress], now: datetime) -> List[ReviewItem]:
        """Concepts whose review time has passed, highest priority first."""
        items = []
        for progress in progresses:
            due_at = progress.next_review_due_at
            if due_at is None or due_at > now:
                continue
            overdue = now - due_at
            items.append(ReviewItem(
                concept_id=progress.concept_id,
                priority=self.priority(progress, overdue),
                overdue_ms=int(overdue.total_seconds() * 1000),
                mastery_score=progress.mastery_score,
                consistency_score=progress.consistency_score,
                next_review_due_at=due_at,
            ))
        items.sort(key=lambda item: (-item.priority, item.concept_id))
        return items
