"""
Pydantic schemas for attempt submission and concept progress.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from masterygate.engines.reasoning.analyzer import QuestionType
from masterygate.kernel.records import AttemptContext


class QuestionSchema(BaseModel):
    """The question the attempt answers."""

    text: str = ""
    expected_concepts: List[str] = []
    question_type: QuestionType = QuestionType.GENERAL


class AttemptSubmitRequest(BaseModel):
    """One answer with its justification."""

    concept_id: str
    correct: bool
    attempts_used: int = 1
    time_spent_ms: int
    reasoning_text: Optional[str] = None
    context: AttemptContext = AttemptContext.PRACTICE
    question: Optional[QuestionSchema] = None
    answer: Optional[Any] = None


class AttemptResponse(BaseModel):
    """Scoring outcome of a submitted attempt."""

    attempt_id: uuid.UUID
    learner_id: str
    concept_id: str
    reasoning_score: float
    is_reasoning_valid: bool
    concept_mastery_score: float
    is_concept_mastered: bool
    mastery_achieved: bool
    feedback: str
    suggestions: List[str] = []
    strengths: List[str] = []
    improvement_areas: List[str] = []
    criteria: Dict[str, float] = {}
    next_review_due_at: Optional[datetime] = None


class ConceptProgressResponse(BaseModel):
    """A learner's standing on one concept."""

    learner_id: str
    concept_id: str
    total_attempts: int
    correct_attempts: int
    assessment_attempts: int
    total_time_spent_ms: int
    scores: Dict[str, float] = Field(default_factory=dict)
    mastery_score: float
    is_mastered: bool
    mastered_at: Optional[datetime] = None
    first_seen_at: datetime
    last_attempt_at: datetime
    next_review_due_at: Optional[datetime] = None
    review_interval_days: Optional[int] = None
