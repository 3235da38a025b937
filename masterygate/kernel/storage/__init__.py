"""
Learning stores.

LearningStore is the persistence contract; InMemoryLearningStore backs tests
and local runs, SqlLearningStore backs the API.
"""

from masterygate.kernel.storage.contract import LearningStore
from masterygate.kernel.storage.memory import InMemoryLearningStore
from masterygate.kernel.storage.sql import SqlLearningStore

__all__ = [
    "InMemoryLearningStore",
    "LearningStore",
    "SqlLearningStore",
]
