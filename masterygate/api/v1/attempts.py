"""
Attempt endpoints - submit attempts, concept progress, performance analytics.
"""

from fastapi import APIRouter, HTTPException, status

from masterygate.api.deps import Catalog, Service
from masterygate.engines.mastery.analytics import PerformanceAnalytics
from masterygate.engines.reasoning.analyzer import QuestionContext
from masterygate.schemas.attempt import (
    AttemptResponse,
    AttemptSubmitRequest,
    ConceptProgressResponse,
)
from masterygate.schemas.common import ErrorResponse

router = APIRouter()


@router.post(
    "/{learner_id}/attempts",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def submit_attempt(
    learner_id: str,
    body: AttemptSubmitRequest,
    service: Service,
):
    """Score and record one attempt."""
    question = None
    if body.question is not None:
        question = QuestionContext(**body.question.model_dump())

    result = await service.submit_attempt(
        learner_id,
        body.concept_id,
        correct=body.correct,
        attempts_used=body.attempts_used,
        time_spent_ms=body.time_spent_ms,
        reasoning_text=body.reasoning_text,
        context=body.context,
        question=question,
        answer=body.answer,
    )
    return AttemptResponse.model_validate(result.model_dump())


@router.get(
    "/{learner_id}/concepts/{concept_id}/progress",
    response_model=ConceptProgressResponse,
)
async def get_concept_progress(
    learner_id: str,
    concept_id: str,
    service: Service,
    catalog: Catalog,
):
    """Get the learner's standing on one concept."""
    if not catalog.has_concept(concept_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Concept not found")

    progress = await service.get_concept_progress(learner_id, concept_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No attempts recorded for this concept",
        )

    return ConceptProgressResponse(
        learner_id=progress.learner_id,
        concept_id=progress.concept_id,
        total_attempts=progress.total_attempts,
        correct_attempts=progress.correct_attempts,
        assessment_attempts=progress.assessment_attempts,
        total_time_spent_ms=progress.total_time_spent_ms,
        scores=progress.dimension_scores().as_dict(),
        mastery_score=progress.mastery_score,
        is_mastered=progress.is_mastered,
        mastered_at=progress.mastered_at,
        first_seen_at=progress.first_seen_at,
        last_attempt_at=progress.last_attempt_at,
        next_review_due_at=progress.next_review_due_at,
        review_interval_days=progress.review_interval_days,
    )


@router.get("/{learner_id}/analytics", response_model=PerformanceAnalytics)
async def get_performance_analytics(
    learner_id: str,
    service: Service,
):
    """Overview, trends, weak areas and recommendations for the learner."""
    return await service.get_performance_analytics(learner_id)
