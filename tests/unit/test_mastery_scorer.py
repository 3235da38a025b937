"""Unit tests for MasteryScorer."""

from datetime import datetime, timedelta, timezone

import pytest

from masterygate.engines.mastery.aggregator import ConceptProgressAggregator
from masterygate.engines.mastery.scorer import MasteryScorer
from masterygate.kernel.records import (
    Attempt,
    AttemptContext,
    DimensionScores,
    MasteryDimension,
)

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _attempt(minute, correct=True, score=0.9, context=AttemptContext.PRACTICE):
    return Attempt(
        timestamp=T0 + timedelta(minutes=minute),
        learner_id="learner-1",
        concept_id="c1",
        correct=correct,
        attempts_used=1,
        time_spent_ms=30000,
        reasoning_text="First I count, then I add because the sets are disjoint.",
        reasoning_score=score,
        context=context,
    )


@pytest.fixture
def scorer() -> MasteryScorer:
    return MasteryScorer()


@pytest.fixture
def aggregator() -> ConceptProgressAggregator:
    return ConceptProgressAggregator()


def _run(aggregator, scorer, attempts):
    progress = None
    evaluations = []
    for attempt in attempts:
        progress = aggregator.apply(progress, attempt)
        evaluation = scorer.evaluate(progress, attempt.timestamp)
        progress = evaluation.progress
        evaluations.append(evaluation)
    return evaluations


class TestMasteryScorer:
    """Overall score and the mastered check."""

    def test_three_strong_attempts_master_concept(self, aggregator, scorer):
        """Reasoning .9, .85, .88 with all answers correct masters on the third attempt."""
        evaluations = _run(aggregator, scorer, [
            _attempt(0, score=0.9),
            _attempt(1, score=0.85),
            _attempt(2, score=0.88),
        ])

        assert [e.mastered_now for e in evaluations] == [False, False, True]
        last = evaluations[-1]
        assert last.overall == pytest.approx(0.8503, abs=1e-4)
        assert last.scores.reasoning == pytest.approx(0.8767, abs=1e-4)

        achievement = last.achievement
        assert achievement.attempts_required == 3
        assert achievement.time_to_mastery_ms == 120000
        assert achievement.overall_score == pytest.approx(last.overall)
        assert last.progress.mastered_at == T0 + timedelta(minutes=2)

    def test_two_attempts_are_never_enough(self, aggregator, scorer):
        evaluations = _run(aggregator, scorer, [_attempt(0, score=1.0), _attempt(1, score=1.0)])
        assert not any(e.qualifies for e in evaluations)

    def test_achievement_is_recorded_once(self, aggregator, scorer):
        evaluations = _run(aggregator, scorer, [_attempt(i) for i in range(5)])

        achievements = [e.achievement for e in evaluations if e.achievement is not None]
        assert len(achievements) == 1
        assert evaluations[-1].progress.mastered_at == T0 + timedelta(minutes=2)

    def test_mastery_persists_after_a_miss(self, aggregator, scorer):
        """Once mastered, the concept stays mastered; the score still drops."""
        evaluations = _run(aggregator, scorer, [_attempt(i) for i in range(3)] + [_attempt(3, correct=False)])

        last = evaluations[-1]
        assert last.qualifies is False
        assert last.progress.is_mastered is True
        assert last.progress.mastery_score < evaluations[2].progress.mastery_score

    def test_weak_reasoning_blocks_mastery(self, aggregator, scorer):
        evaluations = _run(aggregator, scorer, [_attempt(i, score=0.5) for i in range(5)])

        last = evaluations[-1]
        assert last.qualifies is False
        assert MasteryDimension.REASONING in last.failing_dimensions


class TestDimensionScores:
    """Weights and unknown dimensions."""

    def test_overall_uses_weights(self, scorer):
        scores = DimensionScores(
            accuracy=1.0, consistency=0.0, reasoning=0.0, retention=0.0, application=0.0,
            retention_known=True, application_known=True,
        )
        assert scorer.overall(scores) == pytest.approx(0.30)

        scores = DimensionScores(
            accuracy=1.0, consistency=1.0, reasoning=1.0, retention=1.0, application=1.0,
            retention_known=True, application_known=True,
        )
        assert scorer.overall(scores) == pytest.approx(1.0)

    def test_unknown_dimensions_do_not_fail(self, scorer):
        scores = DimensionScores(accuracy=0.9, consistency=0.9, reasoning=0.9)
        assert scorer.failing_dimensions(scores) == []

    def test_known_low_retention_fails(self, scorer):
        scores = DimensionScores(
            accuracy=0.9, consistency=0.9, reasoning=0.9, retention=0.4, retention_known=True,
        )
        assert scorer.failing_dimensions(scores) == [MasteryDimension.RETENTION]

    def test_accuracy_uses_last_five_outcomes(self, aggregator, scorer):
        evaluations = _run(
            aggregator, scorer,
            [_attempt(0, correct=False), _attempt(1, correct=False)] + [_attempt(i) for i in range(2, 7)],
        )
        assert evaluations[-1].scores.accuracy == 1.0
