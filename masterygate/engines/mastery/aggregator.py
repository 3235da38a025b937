"""
Concept Progress Aggregator - rolling statistics per (learner, concept).

apply() is pure: it takes the previous ConceptProgress (or None for the first
attempt) and returns a new one. Consistency and retention are derived only
from the bounded outcome window, never from the full history.
"""

from datetime import timedelta
from typing import List, Optional

from masterygate.engines.policy import ScoringPolicy
from masterygate.kernel.records import (
    Attempt,
    AttemptContext,
    ConceptProgress,
    RecentOutcome,
)


def incremental_mean(current: float, new_value: float, n: int) -> float:
    """Running mean after the n-th value (n starts at 1)."""
    if n <= 1:
        return float(new_value)
    return current + (new_value - current) / n


def consistency_of(outcomes: List[RecentOutcome], minimum: int = 3) -> float:
    """1 - 2 * variance of the correctness sequence; 0 below `minimum` outcomes."""
    if len(outcomes) < minimum:
        return 0.0
    values = [1.0 if o.correct else 0.0 for o in outcomes]
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return max(0.0, 1.0 - 2.0 * variance)


def retention_of(
    outcomes: List[RecentOutcome],
    session_gap: timedelta,
    retention_gap: timedelta,
) -> Optional[float]:
    """
    Accuracy after long breaks.

    Outcomes are split into groups wherever consecutive attempts are more
    than `session_gap` apart. Each group opened by a break longer than
    `retention_gap` contributes its accuracy; the result is their mean.
    None when no group qualifies.
    """
    ordered = sorted(outcomes, key=lambda o: o.timestamp)
    groups: List[List[RecentOutcome]] = []
    gap_lengths: List[timedelta] = []

    for previous, current in zip(ordered, ordered[1:]):
        gap = current.timestamp - previous.timestamp
        if gap > session_gap:
            groups.append([current])
            gap_lengths.append(gap)
        elif groups:
            groups[-1].append(current)

    scores = [
        sum(1 for o in group if o.correct) / len(group)
        for group, gap in zip(groups, gap_lengths)
        if gap > retention_gap
    ]
    if not scores:
        return None
    return sum(scores) / len(scores)


class ConceptProgressAggregator:
    """Folds attempts into ConceptProgress."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def apply(
        self,
        progress: Optional[ConceptProgress],
        attempt: Attempt,
        difficulty_level: int = 1,
    ) -> ConceptProgress:
        policy = self.policy
        if progress is None:
            progress = ConceptProgress(
                learner_id=attempt.learner_id,
                concept_id=attempt.concept_id,
                difficulty_level=difficulty_level,
                first_seen_at=attempt.timestamp,
                last_attempt_at=attempt.timestamp,
            )

        total = progress.total_attempts + 1
        is_assessment = attempt.context == AttemptContext.ASSESSMENT

        history = (progress.reasoning_score_history + [attempt.reasoning_score])[
            -policy.reasoning_history_size:
        ]
        outcomes = (
            progress.recent_outcomes
            + [RecentOutcome(timestamp=attempt.timestamp, correct=attempt.correct, context=attempt.context)]
        )[-policy.outcome_window:]

        assessment_attempts = progress.assessment_attempts + (1 if is_assessment else 0)
        assessment_correct = progress.assessment_correct + (
            1 if is_assessment and attempt.correct else 0
        )

        retention = retention_of(
            outcomes,
            session_gap=timedelta(hours=policy.session_gap_hours),
            retention_gap=timedelta(hours=policy.retention_gap_hours),
        )

        return progress.model_copy(update={
            "total_attempts": total,
            "correct_attempts": progress.correct_attempts + (1 if attempt.correct else 0),
            "assessment_attempts": assessment_attempts,
            "assessment_correct": assessment_correct,
            "rolling_average_attempts": incremental_mean(
                progress.rolling_average_attempts, attempt.attempts_used, total
            ),
            "rolling_average_time_ms": incremental_mean(
                progress.rolling_average_time_ms, attempt.time_spent_ms, total
            ),
            "total_time_spent_ms": progress.total_time_spent_ms + attempt.time_spent_ms,
            "reasoning_score_history": history,
            "recent_outcomes": outcomes,
            "consistency_score": consistency_of(outcomes, policy.min_attempts_for_consistency),
            "retention_score": policy.unknown_score if retention is None else retention,
            "retention_known": retention is not None,
            "application_score": (
                assessment_correct / assessment_attempts
                if assessment_attempts
                else policy.unknown_score
            ),
            "last_attempt_at": max(progress.last_attempt_at, attempt.timestamp),
        })
