"""
Progression endpoints - advancement requests, decision history, due reviews.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from masterygate.api.deps import Service
from masterygate.kernel.records import GateFinding, ProgressionDecision
from masterygate.schemas.common import ErrorResponse
from masterygate.schemas.progression import (
    DecisionResponse,
    FindingSchema,
    ProgressionEvaluateRequest,
    ProgressionResponse,
    ReviewItemResponse,
)

router = APIRouter()


def _findings(findings: List[GateFinding]) -> List[FindingSchema]:
    return [FindingSchema.model_validate(f.model_dump(mode="json")) for f in findings]


def _decision_to_response(decision: ProgressionDecision) -> DecisionResponse:
    return DecisionResponse(
        id=decision.id,
        learner_id=decision.learner_id,
        current_level=decision.current_level,
        target_level=decision.target_level,
        timestamp=decision.timestamp,
        outcome=decision.outcome.value,
        stage=decision.stage.value,
        reason=decision.reason,
        evidence=decision.evidence,
        missing_requirements=_findings(decision.missing_requirements),
        blockers=_findings(decision.blockers),
    )


@router.post(
    "/{learner_id}/progression/evaluate",
    response_model=ProgressionResponse,
    responses={503: {"model": ErrorResponse}},
)
async def evaluate_progression(
    learner_id: str,
    body: ProgressionEvaluateRequest,
    service: Service,
):
    """Decide whether the learner may advance to the target level. Every call is recorded."""
    result = await service.evaluate_progression(learner_id, body.target_level)
    return ProgressionResponse(
        decision_id=result.decision_id,
        can_progress=result.can_progress,
        reason=result.reason,
        stage=result.stage.value,
        current_level=result.current_level,
        target_level=result.target_level,
        requirements=_findings(result.requirements),
        blockers=_findings(result.blockers),
        recommendations=result.recommendations,
        timeline=result.timeline,
        evidence=result.evidence,
    )


@router.get("/{learner_id}/progression/decisions", response_model=List[DecisionResponse])
async def list_decisions(
    learner_id: str,
    service: Service,
    target_level: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    """Recorded progression decisions, newest first."""
    decisions = await service.list_decisions(learner_id, target_level=target_level, limit=limit)
    return [_decision_to_response(d) for d in decisions]


@router.get("/{learner_id}/reviews/due", response_model=List[ReviewItemResponse])
async def get_due_reviews(
    learner_id: str,
    service: Service,
):
    """Concepts due for review, highest priority first."""
    items = await service.get_due_reviews(learner_id)
    return [ReviewItemResponse.model_validate(item.model_dump()) for item in items]
