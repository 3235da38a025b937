"""
Domain records shared by the engines, the stores and the API.

Attempts, achievements and decisions are append-only and frozen.
ConceptProgress, LearnerProfile and BlockedAttemptCounter are per-key
aggregates that are replaced wholesale on every update.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AttemptContext(str, Enum):
    """Where an attempt was made."""
    PRACTICE = "practice"
    ASSESSMENT = "assessment"
    REVIEW = "review"


class MasteryDimension(str, Enum):
    """The five dimensions of concept mastery."""
    ACCURACY = "accuracy"
    CONSISTENCY = "consistency"
    REASONING = "reasoning"
    RETENTION = "retention"
    APPLICATION = "application"


class Attempt(BaseModel):
    """One submitted answer with its justification."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: datetime
    learner_id: str
    concept_id: str
    correct: bool
    attempts_used: int = Field(ge=1)
    time_spent_ms: int = Field(ge=0)
    reasoning_text: str
    reasoning_score: float = Field(ge=0.0, le=1.0)
    context: AttemptContext = AttemptContext.PRACTICE


class RecentOutcome(BaseModel):
    """Entry of the bounded outcome window kept on ConceptProgress."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    correct: bool
    context: AttemptContext = AttemptContext.PRACTICE


class DimensionScores(BaseModel):
    """
    Per-dimension scores of one concept.

    Retention and application start at the neutral 0.5 and are flagged as
    unknown until there is evidence for them.
    """

    accuracy: float = Field(0.0, ge=0.0, le=1.0)
    consistency: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: float = Field(0.0, ge=0.0, le=1.0)
    retention: float = Field(0.5, ge=0.0, le=1.0)
    application: float = Field(0.5, ge=0.0, le=1.0)
    retention_known: bool = False
    application_known: bool = False

    def value(self, dimension: MasteryDimension) -> float:
        return getattr(self, dimension.value)

    def is_known(self, dimension: MasteryDimension) -> bool:
        if dimension == MasteryDimension.RETENTION:
            return self.retention_known
        if dimension == MasteryDimension.APPLICATION:
            return self.application_known
        return True

    def as_dict(self) -> Dict[str, float]:
        return {d.value: self.value(d) for d in MasteryDimension}


class ConceptProgress(BaseModel):
    """Rolling statistics of one learner on one concept."""

    learner_id: str
    concept_id: str

    total_attempts: int = 0
    correct_attempts: int = 0
    assessment_attempts: int = 0
    assessment_correct: int = 0
    rolling_average_attempts: float = 0.0
    rolling_average_time_ms: float = 0.0
    total_time_spent_ms: int = 0

    # Bounded windows, oldest first
    reasoning_score_history: List[float] = Field(default_factory=list)
    recent_outcomes: List[RecentOutcome] = Field(default_factory=list)

    accuracy_score: float = Field(0.0, ge=0.0, le=1.0)
    consistency_score: float = Field(0.0, ge=0.0, le=1.0)
    reasoning_score: float = Field(0.0, ge=0.0, le=1.0)
    retention_score: float = Field(0.5, ge=0.0, le=1.0)
    retention_known: bool = False
    application_score: float = Field(0.5, ge=0.0, le=1.0)
    mastery_score: float = Field(0.0, ge=0.0, le=1.0)

    difficulty_level: int = 1
    first_seen_at: datetime
    last_attempt_at: datetime
    last_mastery_check_at: Optional[datetime] = None
    next_review_due_at: Optional[datetime] = None
    review_interval_days: Optional[int] = None
    mastered_at: Optional[datetime] = None

    @property
    def application_known(self) -> bool:
        return self.assessment_attempts > 0

    @property
    def is_mastered(self) -> bool:
        return self.mastered_at is not None

    def dimension_scores(self) -> DimensionScores:
        return DimensionScores(
            accuracy=self.accuracy_score,
            consistency=self.consistency_score,
            reasoning=self.reasoning_score,
            retention=self.retention_score,
            application=self.application_score,
            retention_known=self.retention_known,
            application_known=self.application_known,
        )


class MasteryAchievement(BaseModel):
    """Written once, the first time a concept qualifies as mastered."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    learner_id: str
    concept_id: str
    timestamp: datetime
    scores: DimensionScores
    overall_score: float
    attempts_required: int
    time_to_mastery_ms: int


class DecisionOutcome(str, Enum):
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"


class GateStage(str, Enum):
    """Stages of the progression gate, in evaluation order."""
    ELIGIBILITY = "eligibility"
    MASTERY_EVIDENCE = "mastery_evidence"
    RETENTION_APPLICATION = "retention_application"
    STRICT_EVALUATION = "strict_evaluation"
    CHALLENGE = "challenge"
    COMPLETE = "complete"
    ERROR = "error"


class FindingKind(str, Enum):
    """What a gate finding is about."""
    LEVEL_SKIP = "level-skip"
    ALREADY_AT_LEVEL = "already-at-level"
    COOLDOWN = "cooldown"
    CONCEPT_MASTERY = "concept-mastery"
    PERFORMANCE_STANDARD = "performance-standard"
    CONSISTENCY_STANDARD = "consistency-standard"
    RETENTION_PERIOD = "retention-period"
    APPLICATION_STANDARD = "application-standard"
    OVERDUE_REVIEWS = "overdue-reviews"
    DIMENSION_STANDARD = "dimension-standard"
    MINIMUM_ATTEMPTS = "minimum-attempts"
    MINIMUM_TIME = "minimum-time"
    CHALLENGE = "challenge"
    EVALUATION_ERROR = "evaluation-error"


class GateFinding(BaseModel):
    """One unmet requirement or blocker found by the gate."""

    model_config = ConfigDict(frozen=True)

    kind: FindingKind
    message: str
    concept_id: Optional[str] = None
    dimension: Optional[MasteryDimension] = None
    current: Optional[float] = None
    required: Optional[float] = None
    count: Optional[int] = None
    remaining_ms: Optional[int] = None


class ProgressionDecision(BaseModel):
    """Audit record of one advancement evaluation."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    learner_id: str
    current_level: int
    target_level: int
    timestamp: datetime
    outcome: DecisionOutcome
    stage: GateStage
    reason: str
    evidence: Dict[str, Any] = Field(default_factory=dict)
    missing_requirements: List[GateFinding] = Field(default_factory=list)
    blockers: List[GateFinding] = Field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.outcome == DecisionOutcome.ALLOW


class BlockedAttemptCounter(BaseModel):
    """BLOCK decisions for one (learner, target level) inside the rolling window."""

    learner_id: str
    target_level: int
    block_timestamps: List[datetime] = Field(default_factory=list)
    last_attempt_at: Optional[datetime] = None

    @property
    def count(self) -> int:
        return len(self.block_timestamps)

    def pruned(self, now: datetime, window: timedelta) -> "BlockedAttemptCounter":
        cutoff = now - window
        return self.model_copy(update={
            "block_timestamps": [t for t in self.block_timestamps if t > cutoff],
        })

    def record_block(self, at: datetime, window: timedelta) -> "BlockedAttemptCounter":
        current = self.pruned(at, window)
        return current.model_copy(update={
            "block_timestamps": current.block_timestamps + [at],
            "last_attempt_at": at,
        })


class LearnerProfile(BaseModel):
    """Level and session state of one learner."""

    learner_id: str
    current_level: int = Field(1, ge=1)
    last_learning_session_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
