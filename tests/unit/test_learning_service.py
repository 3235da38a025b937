"""Unit tests for LearningService over the in-memory store."""

from datetime import timedelta

import pytest

from masterygate.engines.progression.gate import (
    REASON_ALLOW,
    REASON_ALREADY_AT_LEVEL,
    REASON_COOLDOWN,
    REASON_MASTERY,
    REASON_RETENTION,
    REASON_SKIP,
)
from masterygate.kernel.errors import AttemptValidationError, EvaluationError, StorageError
from masterygate.kernel.records import AttemptContext, FindingKind, GateStage, LearnerProfile
from masterygate.kernel.storage.memory import InMemoryLearningStore


REASONING = "First I count both groups, then I add them because they do not overlap."


async def _submit(service, learner_id="learner-1", concept_id="c1", correct=True, **kwargs):
    options = {
        "attempts_used": 1,
        "time_spent_ms": 60000,
        "reasoning_text": REASONING,
    }
    options.update(kwargs)
    return await service.submit_attempt(learner_id, concept_id, correct, **options)


async def _seed_learner(store, level, created_at):
    await store.save_learner(LearnerProfile(learner_id="learner-1", current_level=level, created_at=created_at))
    await store.commit()


class TestSubmitAttempt:
    """Scoring and recording attempts."""

    @pytest.mark.asyncio
    async def test_mastery_on_third_strong_attempt(self, make_service, stub_analyzer, store, clock):
        """Reasoning .9, .85, .88, all correct: mastered on the third attempt."""
        start = clock.now
        service = make_service(analyzer=stub_analyzer([0.9, 0.85, 0.88]))

        results = []
        for _ in range(3):
            results.append(await _submit(service))
            clock.advance(minutes=1)

        assert [r.mastery_achieved for r in results] == [False, False, True]
        third = results[-1]
        assert third.is_concept_mastered is True
        assert third.concept_mastery_score == pytest.approx(0.8503, abs=1e-4)
        assert third.next_review_due_at == start + timedelta(minutes=2, days=30)

        achievements = await store.list_achievements("learner-1")
        assert len(achievements) == 1
        assert achievements[0].attempts_required == 3

    @pytest.mark.asyncio
    async def test_no_second_achievement(self, service, store, clock):
        results = []
        for _ in range(5):
            results.append(await _submit(service))
            clock.advance(minutes=1)

        assert sum(r.mastery_achieved for r in results) == 1
        assert results[-1].is_concept_mastered is True
        assert len(await store.list_achievements("learner-1")) == 1
        assert len(await store.list_attempts("learner-1")) == 5

    @pytest.mark.asyncio
    async def test_attempt_result_carries_feedback(self, service):
        result = await _submit(service)

        assert result.learner_id == "learner-1"
        assert result.concept_id == "c1"
        assert result.reasoning_score == pytest.approx(0.9)
        assert result.is_reasoning_valid is True
        assert result.feedback == "Stub feedback"
        assert result.mastery_achieved is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs,field", [
        ({"reasoning_text": "   "}, "reasoning_text"),
        ({"reasoning_text": None}, "reasoning_text"),
        ({"concept_id": "unknown"}, "concept_id"),
        ({"learner_id": " "}, "learner_id"),
        ({"time_spent_ms": -1}, "time_spent_ms"),
        ({"attempts_used": 0}, "attempts_used"),
        ({"context": "exam"}, "context"),
    ])
    async def test_invalid_attempts_store_nothing(self, service, store, analyzer, kwargs, field):
        with pytest.raises(AttemptValidationError) as exc_info:
            await _submit(service, **kwargs)

        assert exc_info.value.field == field
        assert analyzer.calls == 0
        assert await store.list_attempts("learner-1") == []
        assert await store.get_learner("learner-1") is None

    @pytest.mark.asyncio
    async def test_analyzer_failure_is_evaluation_error(self, make_service, store):
        class BrokenAnalyzer:
            def analyze(self, reasoning_text, question, answer, is_correct):
                raise RuntimeError("model offline")

        service = make_service(analyzer=BrokenAnalyzer())

        with pytest.raises(EvaluationError):
            await _submit(service)

        assert await store.list_attempts("learner-1") == []
        assert await store.load_progress("learner-1", "c1") is None

    @pytest.mark.asyncio
    async def test_storage_failure_propagates_and_rolls_back(self, make_service):
        class FailingStore(InMemoryLearningStore):
            def __init__(self):
                super().__init__()
                self.rollbacks = 0

            async def save_progress(self, progress):
                raise StorageError("Failed to save progress")

            async def rollback(self):
                self.rollbacks += 1
                await super().rollback()

        failing = FailingStore()
        service = make_service(learning_store=failing)

        with pytest.raises(StorageError):
            await _submit(service)

        assert failing.rollbacks == 1
        assert await failing.list_attempts("learner-1") == []

    @pytest.mark.asyncio
    async def test_review_attempts_do_not_start_a_session(self, service, store, clock):
        start = clock.now
        await _submit(service)
        clock.advance(hours=1)
        await _submit(service, context=AttemptContext.REVIEW)

        learner = await store.get_learner("learner-1")
        assert learner.last_learning_session_at == start

    @pytest.mark.asyncio
    async def test_context_accepts_strings(self, service, store):
        await _submit(service, context="assessment")

        progress = await store.load_progress("learner-1", "c1")
        assert progress.assessment_attempts == 1


class TestDueReviews:
    """Reviews scheduled by attempts."""

    @pytest.mark.asyncio
    async def test_wrong_answer_is_due_next_day(self, service, clock):
        await _submit(service, correct=False)

        assert await service.get_due_reviews("learner-1") == []

        clock.advance(days=2)
        reviews = await service.get_due_reviews("learner-1")

        assert [r.concept_id for r in reviews] == ["c1"]
        assert reviews[0].overdue_ms == 24 * 3600 * 1000

    @pytest.mark.asyncio
    async def test_unknown_learner_has_no_reviews(self, service):
        assert await service.get_due_reviews("nobody") == []


class TestEvaluateProgression:
    """Progression decisions, cooldown and promotion."""

    @pytest.mark.asyncio
    async def test_cannot_skip_levels(self, service, store, clock):
        await _seed_learner(store, level=2, created_at=clock.now)

        result = await service.evaluate_progression("learner-1", 5)

        assert result.can_progress is False
        assert result.reason == REASON_SKIP
        assert result.stage == GateStage.ELIGIBILITY
        decisions = await service.list_decisions("learner-1")
        assert len(decisions) == 1
        assert decisions[0].id == result.decision_id
        counter = await store.load_block_counter("learner-1", 5)
        assert counter.count == 1

    @pytest.mark.asyncio
    async def test_cooldown_after_repeated_blocks(self, service, store, clock):
        await _seed_learner(store, level=2, created_at=clock.now)

        results = []
        for _ in range(6):
            results.append(await service.evaluate_progression("learner-1", 3))
            clock.advance(minutes=1)

        assert [r.stage for r in results[:4]] == [GateStage.MASTERY_EVIDENCE] * 4
        assert all(r.reason == REASON_MASTERY for r in results[:4])
        assert [r.reason for r in results[4:]] == [REASON_COOLDOWN] * 2
        assert results[4].stage == GateStage.ELIGIBILITY
        assert "concepts" not in results[5].evidence

        decisions = await service.list_decisions("learner-1", target_level=3)
        assert len(decisions) == 6
        assert decisions[0].id == results[5].decision_id

        clock.advance(hours=25)
        later = await service.evaluate_progression("learner-1", 3)
        assert later.stage == GateStage.MASTERY_EVIDENCE

    @pytest.mark.asyncio
    async def test_retention_wait_blocks_right_after_practice(self, service, clock):
        for _ in range(4):
            await _submit(service, context=AttemptContext.ASSESSMENT)
            clock.advance(minutes=1)

        result = await service.evaluate_progression("learner-1", 2)

        assert result.can_progress is False
        assert result.stage == GateStage.RETENTION_APPLICATION
        assert result.reason == REASON_RETENTION
        assert [f.kind for f in result.requirements] == [FindingKind.RETENTION_PERIOD]
        assert (await service.get_learner("learner-1")).current_level == 1

    @pytest.mark.asyncio
    async def test_evidenced_mastery_promotes_learner(self, service, clock):
        for _ in range(4):
            await _submit(service, context=AttemptContext.ASSESSMENT)
            clock.advance(minutes=1)
        # Past the retention wait, well before the 60 day review comes due
        clock.advance(hours=25)

        result = await service.evaluate_progression("learner-1", 2)

        assert result.can_progress is True
        assert result.reason == REASON_ALLOW
        assert result.stage == GateStage.COMPLETE
        assert result.timeline == "Now"
        learner = await service.get_learner("learner-1")
        assert learner.current_level == 2

        again = await service.evaluate_progression("learner-1", 2)
        assert again.can_progress is False
        assert again.reason == REASON_ALREADY_AT_LEVEL

    @pytest.mark.asyncio
    async def test_blocked_result_has_recommendations(self, service):
        result = await service.evaluate_progression("learner-1", 2)

        assert result.can_progress is False
        assert "Master concept: c1" in result.recommendations

    @pytest.mark.asyncio
    async def test_blank_learner_id_rejected(self, service):
        with pytest.raises(AttemptValidationError):
            await service.evaluate_progression("", 2)

    @pytest.mark.asyncio
    async def test_decision_limit(self, service):
        for _ in range(3):
            await service.evaluate_progression("learner-1", 2)

        assert len(await service.list_decisions("learner-1", limit=2)) == 2


class TestQueries:
    """Progress and analytics reads."""

    @pytest.mark.asyncio
    async def test_concept_progress(self, service):
        assert await service.get_concept_progress("learner-1", "c1") is None

        await _submit(service, attempts_used=2)
        progress = await service.get_concept_progress("learner-1", "c1")

        assert progress.total_attempts == 1
        assert progress.rolling_average_attempts == 2.0

    @pytest.mark.asyncio
    async def test_new_learner_defaults_to_level_one(self, service, clock):
        learner = await service.get_learner("learner-9")
        assert learner.current_level == 1
        assert learner.created_at == clock.now

    @pytest.mark.asyncio
    async def test_performance_analytics(self, service, clock):
        await _submit(service)
        clock.advance(minutes=1)
        await _submit(service, correct=False)

        analytics = await service.get_performance_analytics("learner-1")

        assert analytics.overview.total_concepts == 1
        assert analytics.overview.recent_accuracy == pytest.approx(0.5)
        assert [t.period_days for t in analytics.trends] == [7, 14, 30]
        assert analytics.weak_areas[0].concept_id == "c1"
        assert "Focus on accuracy - review fundamental concepts" in analytics.recommendations
