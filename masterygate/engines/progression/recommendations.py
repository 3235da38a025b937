"""
Turns a progression decision into actionable recommendations.
"""

import math
from typing import List

from pydantic import BaseModel, Field

from masterygate.kernel.records import FindingKind, GateFinding, ProgressionDecision


class Recommendation(BaseModel):
    action: str
    priority: str  # high, medium, low


class ProgressionAdvice(BaseModel):
    ready: bool
    message: str
    timeline: str
    recommendations: List[Recommendation] = Field(default_factory=list)

    @property
    def actions(self) -> List[str]:
        return [r.action for r in self.recommendations]


def _for_finding(finding: GateFinding) -> List[Recommendation]:
    kind = finding.kind
    if kind == FindingKind.CONCEPT_MASTERY and finding.concept_id:
        return [Recommendation(action=f"Master concept: {finding.concept_id}", priority="high")]
    if kind == FindingKind.PERFORMANCE_STANDARD and finding.current is not None and finding.required is not None:
        return [Recommendation(
            action=f"Improve accuracy from {finding.current * 100:.0f}% to {finding.required * 100:.0f}%",
            priority="high",
        )]
    if kind == FindingKind.CONSISTENCY_STANDARD:
        return [Recommendation(
            action="Demonstrate more consistent performance over multiple sessions",
            priority="medium",
        )]
    if kind == FindingKind.RETENTION_PERIOD and finding.remaining_ms is not None:
        hours = math.ceil(finding.remaining_ms / 3_600_000)
        return [Recommendation(action=f"Wait {hours} hours for retention testing", priority="low")]
    if kind == FindingKind.OVERDUE_REVIEWS and finding.count:
        return [Recommendation(action=f"Complete {finding.count} overdue reviews", priority="high")]
    if kind == FindingKind.APPLICATION_STANDARD:
        return [Recommendation(action="Answer assessment questions on the required concepts", priority="high")]
    if kind == FindingKind.COOLDOWN:
        return [Recommendation(action="Keep practicing before requesting advancement again", priority="low")]
    if kind in (FindingKind.DIMENSION_STANDARD, FindingKind.MINIMUM_ATTEMPTS,
                FindingKind.MINIMUM_TIME, FindingKind.CHALLENGE):
        return [Recommendation(action=finding.message, priority="medium")]
    return []


def advise(decision: ProgressionDecision) -> ProgressionAdvice:
    """Recommendations for the learner after `decision`."""
    if decision.allowed:
        return ProgressionAdvice(
            ready=True,
            message="You're ready to advance!",
            timeline="Now",
            recommendations=[Recommendation(action="Take the advancement assessment", priority="high")],
        )

    timeline = "Variable"
    recommendations: List[Recommendation] = []
    for finding in list(decision.missing_requirements) + list(decision.blockers):
        recommendations.extend(_for_finding(finding))
        if finding.kind == FindingKind.RETENTION_PERIOD and finding.remaining_ms is not None:
            timeline = f"{math.ceil(finding.remaining_ms / 3_600_000)} hours"
        elif finding.kind == FindingKind.COOLDOWN and finding.remaining_ms is not None:
            timeline = f"{math.ceil(finding.remaining_ms / 3_600_000)} hours"

    return ProgressionAdvice(
        ready=False,
        message=decision.reason,
        timeline=timeline,
        recommendations=recommendations,
    )
