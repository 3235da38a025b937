"""
Pydantic schemas for progression decisions and reviews.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProgressionEvaluateRequest(BaseModel):
    """Request to advance to a level."""

    target_level: int = Field(..., ge=1)


class FindingSchema(BaseModel):
    """An unmet requirement or blocker."""

    kind: str
    message: str
    concept_id: Optional[str] = None
    dimension: Optional[str] = None
    current: Optional[float] = None
    required: Optional[float] = None
    count: Optional[int] = None
    remaining_ms: Optional[int] = None


class ProgressionResponse(BaseModel):
    """Outcome of an advancement request."""

    decision_id: uuid.UUID
    can_progress: bool
    reason: str
    stage: str
    current_level: int
    target_level: int
    requirements: List[FindingSchema] = []
    blockers: List[FindingSchema] = []
    recommendations: List[str] = []
    timeline: str = ""
    evidence: Dict[str, Any] = {}


class DecisionResponse(BaseModel):
    """A recorded progression decision."""

    id: uuid.UUID
    learner_id: str
    current_level: int
    target_level: int
    timestamp: datetime
    outcome: str
    stage: str
    reason: str
    evidence: Dict[str, Any] = {}
    missing_requirements: List[FindingSchema] = []
    blockers: List[FindingSchema] = []


class ReviewItemResponse(BaseModel):
    """A concept due for review."""

    concept_id: str
    priority: float
    overdue_ms: int
    mastery_score: float
    consistency_score: float
    next_review_due_at: datetime
