"""Unit tests for ProgressionGate."""

from datetime import datetime, timedelta, timezone

import pytest

from masterygate.engines.progression.gate import (
    REASON_ALLOW,
    REASON_ALREADY_AT_LEVEL,
    REASON_CHALLENGE,
    REASON_COOLDOWN,
    REASON_ERROR,
    REASON_MASTERY,
    REASON_RETENTION,
    REASON_SKIP,
    REASON_STRICT,
    LearnerSnapshot,
    ProgressionGate,
)
from masterygate.engines.progression.requirements import LevelRequirementTable
from masterygate.kernel.records import (
    Attempt,
    AttemptContext,
    BlockedAttemptCounter,
    ConceptProgress,
    DecisionOutcome,
    FindingKind,
    GateStage,
    LearnerProfile,
    MasteryDimension,
    RecentOutcome,
)

NOW = datetime(2026, 10, 10, 12, 0, tzinfo=timezone.utc)


def _strong_progress(concept_id, **overrides):
    """Four correct assessment attempts an hour ago, reasoning .9."""
    last = NOW - timedelta(hours=1)
    outcomes = [
        RecentOutcome(timestamp=last - timedelta(minutes=3 - i), correct=True, context=AttemptContext.ASSESSMENT)
        for i in range(4)
    ]
    fields = dict(
        learner_id="learner-1",
        concept_id=concept_id,
        total_attempts=4,
        correct_attempts=4,
        assessment_attempts=4,
        assessment_correct=4,
        total_time_spent_ms=240000,
        reasoning_score_history=[0.9] * 4,
        recent_outcomes=outcomes,
        accuracy_score=1.0,
        consistency_score=1.0,
        reasoning_score=0.9,
        application_score=1.0,
        mastery_score=0.905,
        first_seen_at=last - timedelta(minutes=3),
        last_attempt_at=last,
        mastered_at=last - timedelta(minutes=1),
        next_review_due_at=NOW + timedelta(days=30),
        review_interval_days=30,
    )
    fields.update(overrides)
    return ConceptProgress(**fields)


def _attempts(concept_id, context=AttemptContext.ASSESSMENT, count=4):
    last = NOW - timedelta(hours=1)
    return [
        Attempt(
            timestamp=last - timedelta(minutes=count - 1 - i),
            learner_id="learner-1",
            concept_id=concept_id,
            correct=True,
            attempts_used=1,
            time_spent_ms=60000,
            reasoning_text="First count, then add because both groups are separate.",
            reasoning_score=0.9,
            context=context,
        )
        for i in range(count)
    ]


def _snapshot(level=1, progress=None, attempts=None, blocks=0, last_session=None):
    if progress is None:
        progress = {"c1": _strong_progress("c1")}
    if attempts is None:
        attempts = _attempts("c1")
    counter = BlockedAttemptCounter(
        learner_id="learner-1",
        target_level=level + 1,
        block_timestamps=[NOW - timedelta(hours=4 - i) for i in range(blocks)],
    )
    return LearnerSnapshot(
        learner=LearnerProfile(
            learner_id="learner-1",
            current_level=level,
            last_learning_session_at=last_session,
        ),
        progress=progress,
        attempts=attempts,
        block_counter=counter,
        now=NOW,
    )


@pytest.fixture
def gate(catalog, requirements, policy) -> ProgressionGate:
    return ProgressionGate(catalog, requirements, policy=policy)


def _kinds(findings):
    return [f.kind for f in findings]


class TestEligibility:
    """Stage 1: level checks and cooldown."""

    def test_strong_evidence_allows_next_level(self, gate):
        decision = gate.evaluate(_snapshot(), target_level=2)

        assert decision.outcome == DecisionOutcome.ALLOW
        assert decision.stage == GateStage.COMPLETE
        assert decision.reason == REASON_ALLOW
        assert decision.evidence["required_concepts"] == ["c1"]
        assert decision.evidence["challenge"]["passed"] is True
        assert decision.missing_requirements == []

    def test_cannot_skip_levels(self, gate):
        decision = gate.evaluate(_snapshot(level=1), target_level=3)

        assert decision.outcome == DecisionOutcome.BLOCK
        assert decision.stage == GateStage.ELIGIBILITY
        assert decision.reason == REASON_SKIP
        assert _kinds(decision.blockers) == [FindingKind.LEVEL_SKIP]

    @pytest.mark.parametrize("target", [1, 2])
    def test_already_at_level(self, gate, target):
        decision = gate.evaluate(_snapshot(level=2), target_level=target)

        assert decision.reason == REASON_ALREADY_AT_LEVEL
        assert decision.stage == GateStage.ELIGIBILITY

    def test_cooldown_after_four_blocks(self, gate):
        decision = gate.evaluate(_snapshot(blocks=4), target_level=2)

        assert decision.outcome == DecisionOutcome.BLOCK
        assert decision.reason == REASON_COOLDOWN
        finding = decision.blockers[0]
        assert finding.kind == FindingKind.COOLDOWN
        assert finding.count == 4
        # Oldest block was 4 hours ago
        assert finding.remaining_ms == 20 * 3600 * 1000
        assert "concepts" not in decision.evidence

    def test_three_blocks_do_not_cool_down(self, gate):
        decision = gate.evaluate(_snapshot(blocks=3), target_level=2)
        assert decision.outcome == DecisionOutcome.ALLOW
        assert decision.evidence["recent_blocks"] == 3

    def test_blocks_outside_window_are_ignored(self, gate):
        snapshot = _snapshot()
        old = BlockedAttemptCounter(
            learner_id="learner-1",
            target_level=2,
            block_timestamps=[NOW - timedelta(hours=30 + i) for i in range(5)],
        )
        decision = gate.evaluate(snapshot.model_copy(update={"block_counter": old}), target_level=2)
        assert decision.outcome == DecisionOutcome.ALLOW


class TestMasteryEvidence:
    """Stage 2: required concepts and recent performance."""

    def test_unpracticed_concept_blocks(self, gate):
        decision = gate.evaluate(_snapshot(progress={}, attempts=[]), target_level=2)

        assert decision.stage == GateStage.MASTERY_EVIDENCE
        assert decision.reason == REASON_MASTERY
        concept = decision.missing_requirements[0]
        assert concept.kind == FindingKind.CONCEPT_MASTERY
        assert concept.concept_id == "c1"
        assert decision.evidence["concepts"]["c1"] == {"attempts": 0, "mastered": False}

    def test_low_recent_accuracy_blocks(self, gate):
        attempts = _attempts("c1")
        attempts = attempts[:2] + [a.model_copy(update={"correct": False}) for a in attempts[2:]]
        decision = gate.evaluate(_snapshot(attempts=attempts), target_level=2)

        assert decision.stage == GateStage.MASTERY_EVIDENCE
        assert FindingKind.PERFORMANCE_STANDARD in _kinds(decision.missing_requirements)

    def test_one_unmastered_concept_blocks_despite_perfect_accuracy(self, catalog, policy):
        """Averaged accuracy cannot stand in for a concept's own mastery."""
        table = LevelRequirementTable.from_dict({
            3: {"required_concepts": ["c1", "c2"], "mastery_threshold": 0.85,
                "min_time_spent_ms": 300000, "retention_test_required": True},
        })
        gate = ProgressionGate(catalog, table, policy=policy)
        progress = {
            "c1": _strong_progress("c1"),
            "c2": _strong_progress("c2", reasoning_score_history=[0.5] * 4),
        }
        decision = gate.evaluate(
            _snapshot(level=2, progress=progress, attempts=_attempts("c1") + _attempts("c2")),
            target_level=3,
        )

        assert decision.outcome == DecisionOutcome.BLOCK
        assert decision.stage == GateStage.MASTERY_EVIDENCE
        assert decision.evidence["recent_accuracy"] == 1.0
        assert decision.evidence["concepts"]["c1"]["mastered"] is True
        assert decision.evidence["concepts"]["c2"]["mastered"] is False
        assert [(f.kind, f.concept_id) for f in decision.missing_requirements] == [
            (FindingKind.CONCEPT_MASTERY, "c2"),
        ]


class TestRetentionApplication:
    """Stage 3: retention period, application and overdue reviews."""

    def _level_two_snapshot(self, last_session):
        progress = {
            "c1": _strong_progress("c1"),
            "c2": _strong_progress("c2"),
        }
        return _snapshot(
            level=2,
            progress=progress,
            attempts=_attempts("c1") + _attempts("c2"),
            last_session=last_session,
        )

    def test_retention_period_must_elapse(self, gate):
        decision = gate.evaluate(self._level_two_snapshot(NOW - timedelta(hours=1)), target_level=3)

        assert decision.stage == GateStage.RETENTION_APPLICATION
        assert decision.reason == REASON_RETENTION
        finding = decision.missing_requirements[0]
        assert finding.kind == FindingKind.RETENTION_PERIOD
        assert finding.message == "Wait 23 hours for retention testing"
        assert finding.remaining_ms == 23 * 3600 * 1000

    def test_retention_period_applies_without_retention_test(self, gate):
        """Level 2 needs no retention test, but the wait still holds."""
        decision = gate.evaluate(_snapshot(last_session=NOW - timedelta(hours=1)), target_level=2)

        assert decision.outcome == DecisionOutcome.BLOCK
        assert decision.stage == GateStage.RETENTION_APPLICATION
        assert _kinds(decision.missing_requirements) == [FindingKind.RETENTION_PERIOD]
        assert decision.missing_requirements[0].remaining_ms == 23 * 3600 * 1000
        assert decision.evidence["hours_since_last_session"] == 1.0

    def test_level_two_allows_once_retention_period_passed(self, gate):
        decision = gate.evaluate(_snapshot(last_session=NOW - timedelta(hours=25)), target_level=2)
        assert decision.outcome == DecisionOutcome.ALLOW

    def test_unknown_retention_fails_strict_gate(self, gate):
        """After the wait, retention still has to be shown."""
        decision = gate.evaluate(self._level_two_snapshot(NOW - timedelta(days=2)), target_level=3)

        assert decision.stage == GateStage.STRICT_EVALUATION
        dims = [f.dimension for f in decision.missing_requirements]
        assert dims == [MasteryDimension.RETENTION]

    def test_overdue_reviews_block(self, gate):
        progress = {"c1": _strong_progress("c1", next_review_due_at=NOW - timedelta(hours=1))}
        decision = gate.evaluate(_snapshot(progress=progress), target_level=2)

        assert decision.stage == GateStage.RETENTION_APPLICATION
        assert _kinds(decision.blockers) == [FindingKind.OVERDUE_REVIEWS]
        assert decision.evidence["overdue_reviews"] == ["c1"]

    def test_unshown_application_blocks(self, gate):
        """Mastered through practice alone, application is still neutral."""
        progress = {"c1": _strong_progress(
            "c1", application_score=0.5, assessment_attempts=0, assessment_correct=0,
        )}
        decision = gate.evaluate(_snapshot(progress=progress), target_level=2)

        assert decision.stage == GateStage.RETENTION_APPLICATION
        assert _kinds(decision.missing_requirements) == [FindingKind.APPLICATION_STANDARD]


class TestStrictEvaluation:
    """Stage 4: dimension minimums, totals and the challenge."""

    def test_minimum_time(self, gate):
        progress = {"c1": _strong_progress("c1", total_time_spent_ms=100000)}
        decision = gate.evaluate(_snapshot(progress=progress), target_level=2)

        assert decision.stage == GateStage.STRICT_EVALUATION
        assert decision.reason == REASON_STRICT
        assert _kinds(decision.missing_requirements) == [FindingKind.MINIMUM_TIME]

    def test_challenge_needs_assessment_attempts(self, gate):
        decision = gate.evaluate(
            _snapshot(attempts=_attempts("c1", context=AttemptContext.PRACTICE)),
            target_level=2,
        )

        assert decision.stage == GateStage.CHALLENGE
        assert decision.reason == REASON_CHALLENGE
        assert decision.missing_requirements[0].message == "No recent assessment attempts to verify mastery"


class TestFailClosed:
    """Internal errors become BLOCK decisions."""

    def test_error_blocks(self, catalog, policy):
        class BrokenTable(LevelRequirementTable):
            def requirement_for(self, level):
                raise RuntimeError("table unavailable")

        gate = ProgressionGate(catalog, BrokenTable({}), policy=policy)
        decision = gate.evaluate(_snapshot(), target_level=2)

        assert decision.outcome == DecisionOutcome.BLOCK
        assert decision.stage == GateStage.ERROR
        assert decision.reason == REASON_ERROR
        assert decision.evidence == {"error": "RuntimeError"}
        assert _kinds(decision.blockers) == [FindingKind.EVALUATION_ERROR]

    def test_lookback_covers_challenge_window(self, gate):
        assert gate.lookback == timedelta(days=14)
