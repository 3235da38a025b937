"""
Per-learner serialization.

Every operation on a learner runs under that learner's lock, so attempts,
mastery checks and progression decisions for one learner never interleave.
Different learners proceed concurrently. A lock is dropped once nobody
holds or waits on it. While the lock is held, log records carry the
learner id.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from masterygate.logging_config import bound_learner


class LearnerLockRegistry:
    """
    Usage:
        locks = LearnerLockRegistry()
        async with locks.hold("learner-1"):
            ...
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, learner_id: str) -> bool:
        lock = self._locks.get(learner_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, learner_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(learner_id)
        if lock is None:
            lock = self._locks[learner_id] = asyncio.Lock()
        self._users[learner_id] = self._users.get(learner_id, 0) + 1
        try:
            async with lock:
                with bound_learner(learner_id):
                    yield
        finally:
            self._users[learner_id] -= 1
            if self._users[learner_id] == 0:
                del self._users[learner_id]
                del self._locks[learner_id]
