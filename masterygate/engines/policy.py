"""
Scoring policy - thresholds, weights and windows used by every engine.

All defaults are the production values. Override any of them through the
environment with the POLICY__ prefix, e.g. POLICY__COOLDOWN_BLOCK_LIMIT=6 or
POLICY__GATE_THRESHOLDS__RETENTION=0.8.
"""

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator


class DimensionValues(BaseModel):
    """One value per mastery dimension."""

    accuracy: float
    consistency: float
    reasoning: float
    retention: float
    application: float

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


class MasteryThresholds(DimensionValues):
    """Per-dimension minimums a concept must meet to count as mastered."""

    accuracy: float = 0.85
    consistency: float = 0.80
    reasoning: float = 0.75
    retention: float = 0.70
    application: float = 0.80


class MasteryWeights(DimensionValues):
    """Weights of the overall mastery score (sum to 1.0)."""

    accuracy: float = 0.30
    consistency: float = 0.25
    reasoning: float = 0.20
    retention: float = 0.15
    application: float = 0.10


class GateThresholds(DimensionValues):
    """Per-dimension minimums of the strict final gate evaluation."""

    accuracy: float = 0.85
    consistency: float = 0.80
    reasoning: float = 0.75
    retention: float = 0.75
    application: float = 0.80


class CriterionValues(BaseModel):
    """One value per reasoning criterion."""

    clarity: float
    logic: float
    evidence: float
    completeness: float
    relevance: float
    consistency: float

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


class ReasoningMinimums(CriterionValues):
    """A justification is valid only when every criterion meets its minimum."""

    clarity: float = 0.7
    logic: float = 0.8
    evidence: float = 0.6
    completeness: float = 0.7
    relevance: float = 0.8
    consistency: float = 0.6


class ReasoningWeights(CriterionValues):
    """Weights of the overall reasoning score (sum to 1.0)."""

    clarity: float = 0.20
    logic: float = 0.25
    evidence: float = 0.20
    completeness: float = 0.15
    relevance: float = 0.10
    consistency: float = 0.10


class ScoringPolicy(BaseModel):
    """Every tunable number of the mastery and progression engines."""

    # Mastery
    mastery_thresholds: MasteryThresholds = Field(default_factory=MasteryThresholds)
    mastery_weights: MasteryWeights = Field(default_factory=MasteryWeights)
    global_mastery_threshold: float = 0.85
    min_attempts_for_mastery: int = 3

    # Aggregation windows
    outcome_window: int = 10
    reasoning_history_size: int = 10
    accuracy_window: int = 5
    reasoning_window: int = 5
    min_attempts_for_consistency: int = 3
    session_gap_hours: float = 1.0
    retention_gap_hours: float = 24.0
    unknown_score: float = 0.5

    # Reasoning analysis
    reasoning_minimums: ReasoningMinimums = Field(default_factory=ReasoningMinimums)
    reasoning_weights: ReasoningWeights = Field(default_factory=ReasoningWeights)
    min_reasoning_length: int = 5
    strength_threshold: float = 0.8

    # Spaced repetition
    review_intervals_days: List[int] = Field(default_factory=lambda: [1, 3, 7, 14, 30, 60])
    mastered_interval_index: int = 4
    review_overdue_cap_days: float = 7.0

    # Progression gate
    gate_thresholds: GateThresholds = Field(default_factory=GateThresholds)
    recent_performance_days: int = 7
    cooldown_block_limit: int = 4
    cooldown_window_hours: float = 24.0
    retention_period_hours: float = 24.0
    min_total_attempts: int = 3
    challenge_window_days: int = 14

    # Analytics
    analytics_recent_attempts: int = 20
    analytics_trend_days: List[int] = Field(default_factory=lambda: [7, 14, 30])
    analytics_top_n: int = 5

    @field_validator("review_intervals_days")
    @classmethod
    def _intervals_not_empty(cls, v: List[int]) -> List[int]:
        if not v or any(days <= 0 for days in v):
            raise ValueError("review_intervals_days must be a non-empty list of positive days")
        return v

    @model_validator(mode="after")
    def _index_in_range(self) -> "ScoringPolicy":
        if not 0 <= self.mastered_interval_index < len(self.review_intervals_days):
            raise ValueError("mastered_interval_index is outside review_intervals_days")
        return self
