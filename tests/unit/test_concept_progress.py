"""Unit tests for ConceptProgressAggregator and its window statistics."""

from datetime import datetime, timedelta, timezone

import pytest

from masterygate.engines.mastery.aggregator import (
    ConceptProgressAggregator,
    consistency_of,
    incremental_mean,
    retention_of,
)
from masterygate.kernel.records import Attempt, AttemptContext, RecentOutcome

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _attempt(at, correct=True, context=AttemptContext.PRACTICE, score=0.8, used=1, time_ms=30000):
    return Attempt(
        timestamp=at,
        learner_id="learner-1",
        concept_id="c1",
        correct=correct,
        attempts_used=used,
        time_spent_ms=time_ms,
        reasoning_text="Because the sum is four.",
        reasoning_score=score,
        context=context,
    )


def _outcome(at, correct=True):
    return RecentOutcome(timestamp=at, correct=correct)


@pytest.fixture
def aggregator() -> ConceptProgressAggregator:
    return ConceptProgressAggregator()


class TestAggregator:
    """Folding attempts into ConceptProgress."""

    def test_first_attempt_creates_progress(self, aggregator):
        """Progress is created lazily with the first attempt."""
        progress = aggregator.apply(None, _attempt(T0, used=2, time_ms=45000), difficulty_level=3)

        assert progress.learner_id == "learner-1"
        assert progress.concept_id == "c1"
        assert progress.total_attempts == 1
        assert progress.correct_attempts == 1
        assert progress.rolling_average_attempts == 2.0
        assert progress.rolling_average_time_ms == 45000.0
        assert progress.total_time_spent_ms == 45000
        assert progress.difficulty_level == 3
        assert progress.first_seen_at == T0
        assert progress.reasoning_score_history == [0.8]

    def test_running_averages(self, aggregator):
        progress = None
        for i, (used, time_ms) in enumerate([(1, 10000), (3, 20000), (2, 30000)]):
            progress = aggregator.apply(progress, _attempt(T0 + timedelta(minutes=i), used=used, time_ms=time_ms))

        assert progress.rolling_average_attempts == pytest.approx(2.0)
        assert progress.rolling_average_time_ms == pytest.approx(20000.0)
        assert progress.total_time_spent_ms == 60000

    def test_windows_are_bounded(self, aggregator):
        """Only the last ten outcomes and reasoning scores are kept."""
        progress = None
        for i in range(12):
            progress = aggregator.apply(
                progress, _attempt(T0 + timedelta(minutes=i), score=i / 20)
            )

        assert progress.total_attempts == 12
        assert len(progress.recent_outcomes) == 10
        assert len(progress.reasoning_score_history) == 10
        assert progress.reasoning_score_history[0] == pytest.approx(2 / 20)
        assert progress.recent_outcomes[0].timestamp == T0 + timedelta(minutes=2)

    def test_application_counts_only_assessments(self, aggregator):
        progress = aggregator.apply(None, _attempt(T0, correct=False))
        assert progress.application_known is False
        assert progress.application_score == 0.5

        progress = aggregator.apply(progress, _attempt(T0 + timedelta(minutes=1), context=AttemptContext.ASSESSMENT))
        progress = aggregator.apply(
            progress,
            _attempt(T0 + timedelta(minutes=2), correct=False, context=AttemptContext.ASSESSMENT),
        )

        assert progress.assessment_attempts == 2
        assert progress.assessment_correct == 1
        assert progress.application_known is True
        assert progress.application_score == pytest.approx(0.5)

    def test_retention_after_long_break(self, aggregator):
        """Accuracy of the session opened by a break longer than a day."""
        progress = None
        for at, correct in [
            (T0, True),
            (T0 + timedelta(minutes=1), True),
            (T0 + timedelta(days=2), True),
            (T0 + timedelta(days=2, minutes=1), False),
        ]:
            progress = aggregator.apply(progress, _attempt(at, correct=correct))

        assert progress.retention_known is True
        assert progress.retention_score == pytest.approx(0.5)

    def test_retention_unknown_without_long_break(self, aggregator):
        progress = None
        for hours in (0, 3, 6):
            progress = aggregator.apply(progress, _attempt(T0 + timedelta(hours=hours)))

        assert progress.retention_known is False
        assert progress.retention_score == 0.5


class TestWindowStatistics:
    """Pure helpers."""

    def test_incremental_mean(self):
        assert incremental_mean(0.0, 4.0, 1) == 4.0
        assert incremental_mean(4.0, 8.0, 2) == 6.0

    def test_consistency_needs_three_outcomes(self):
        outcomes = [_outcome(T0), _outcome(T0 + timedelta(minutes=1))]
        assert consistency_of(outcomes) == 0.0

    def test_consistency_of_steady_and_alternating(self):
        steady = [_outcome(T0 + timedelta(minutes=i)) for i in range(4)]
        alternating = [_outcome(T0 + timedelta(minutes=i), correct=i % 2 == 0) for i in range(4)]

        assert consistency_of(steady) == 1.0
        assert consistency_of(alternating) == pytest.approx(0.5)

    def test_retention_averages_each_qualifying_session(self):
        outcomes = [
            _outcome(T0),
            _outcome(T0 + timedelta(days=2), correct=True),
            _outcome(T0 + timedelta(days=4), correct=False),
        ]
        result = retention_of(outcomes, timedelta(hours=1), timedelta(hours=24))
        assert result == pytest.approx(0.5)

    def test_short_breaks_do_not_count(self):
        outcomes = [_outcome(T0), _outcome(T0 + timedelta(hours=5))]
        assert retention_of(outcomes, timedelta(hours=1), timedelta(hours=24)) is None
