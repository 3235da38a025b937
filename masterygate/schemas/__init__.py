"""
Pydantic schemas for API request/response validation.
"""

from masterygate.schemas.common import ErrorResponse, HealthResponse
from masterygate.schemas.attempt import (
    AttemptResponse,
    AttemptSubmitRequest,
    ConceptProgressResponse,
    QuestionSchema,
)
from masterygate.schemas.progression import (
    DecisionResponse,
    FindingSchema,
    ProgressionEvaluateRequest,
    ProgressionResponse,
    ReviewItemResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Attempts
    "AttemptResponse",
    "AttemptSubmitRequest",
    "ConceptProgressResponse",
    "QuestionSchema",
    # Progression
    "DecisionResponse",
    "FindingSchema",
    "ProgressionEvaluateRequest",
    "ProgressionResponse",
    "ReviewItemResponse",
]
