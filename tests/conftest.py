"""
Pytest fixtures for mastery gate tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import pytest

from masterygate.engines.policy import ScoringPolicy
from masterygate.engines.progression.requirements import LevelRequirementTable
from masterygate.engines.reasoning.analyzer import QuestionContext, ReasoningAssessment
from masterygate.kernel.catalog import ConceptCatalog
from masterygate.kernel.storage.memory import InMemoryLearningStore
from masterygate.orchestration.learning_service import LearningService
from masterygate.orchestration.locks import LearnerLockRegistry


START = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class StubAnalyzer:
    """Returns queued reasoning scores, then `default`."""

    def __init__(self, scores: Optional[List[float]] = None, default: float = 0.9):
        self.scores = list(scores or [])
        self.default = default
        self.calls = 0

    def analyze(
        self,
        reasoning_text: str,
        question: QuestionContext,
        answer: Optional[Any],
        is_correct: bool,
    ) -> ReasoningAssessment:
        self.calls += 1
        score = self.scores.pop(0) if self.scores else self.default
        return ReasoningAssessment(
            is_valid=score >= 0.7,
            score=score,
            criteria={},
            feedback="Stub feedback",
        )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def policy() -> ScoringPolicy:
    return ScoringPolicy()


@pytest.fixture
def catalog() -> ConceptCatalog:
    """Two concepts: c1 at level 1, c2 at level 2 building on c1."""
    return ConceptCatalog.from_dicts([
        {"id": "c1", "name": "Counting", "level": 1, "difficulty": 1,
         "keywords": ["count", "add"]},
        {"id": "c2", "name": "Sums", "level": 2, "difficulty": 2,
         "keywords": ["sum", "total"], "prerequisites": ["c1"]},
    ])


@pytest.fixture
def requirements() -> LevelRequirementTable:
    return LevelRequirementTable.from_dict({
        2: {"required_concepts": ["c1"], "mastery_threshold": 0.80,
            "min_time_spent_ms": 180000, "retention_test_required": False},
        3: {"required_concepts": ["c2"], "mastery_threshold": 0.85,
            "min_time_spent_ms": 300000, "retention_test_required": True},
    })


@pytest.fixture
def store() -> InMemoryLearningStore:
    return InMemoryLearningStore()


@pytest.fixture
def analyzer() -> StubAnalyzer:
    return StubAnalyzer()


@pytest.fixture
def service(store, catalog, requirements, policy, analyzer, clock) -> LearningService:
    return LearningService(
        store,
        catalog=catalog,
        requirements=requirements,
        policy=policy,
        analyzer=analyzer,
        locks=LearnerLockRegistry(),
        clock=clock,
    )


@pytest.fixture
def make_service(store, catalog, requirements, policy, clock):
    """Build a LearningService with some collaborators replaced."""

    def _make(learning_store=None, **overrides) -> LearningService:
        options = {
            "catalog": catalog,
            "requirements": requirements,
            "policy": policy,
            "analyzer": StubAnalyzer(),
            "locks": LearnerLockRegistry(),
            "clock": clock,
        }
        options.update(overrides)
        return LearningService(learning_store or store, **options)

    return _make


@pytest.fixture
def stub_analyzer():
    """Factory for analyzers that return queued reasoning scores."""
    return StubAnalyzer
