"""Unit tests for LearnerLockRegistry."""

import asyncio

import pytest

from masterygate.orchestration.locks import LearnerLockRegistry


class TestLearnerLocks:
    """Per-learner serialization."""

    @pytest.mark.asyncio
    async def test_same_learner_is_serialized(self):
        locks = LearnerLockRegistry()
        events = []

        async def work(name):
            async with locks.hold("learner-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(work("a"), work("b"))

        assert events == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_learners_interleave(self):
        locks = LearnerLockRegistry()
        events = []

        async def work(learner_id):
            async with locks.hold(learner_id):
                events.append(f"{learner_id}-start")
                await asyncio.sleep(0.01)
                events.append(f"{learner_id}-end")

        await asyncio.gather(work("a"), work("b"))

        assert events[:2] == ["a-start", "b-start"]

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped(self):
        locks = LearnerLockRegistry()

        async with locks.hold("learner-1"):
            assert locks.is_locked("learner-1")
            assert len(locks) == 1

        assert len(locks) == 0
        assert not locks.is_locked("learner-1")

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = LearnerLockRegistry()

        with pytest.raises(ValueError):
            async with locks.hold("learner-1"):
                raise ValueError("boom")

        assert len(locks) == 0
