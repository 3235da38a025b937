"""
Challenge assessment - the last check of the progression gate.

The default challenge is deterministic: it re-checks the learner's recent
assessment-context attempts on the required concepts. Another assessor
(e.g. a proctored exam service) can be plugged in through the
ChallengeAssessor protocol.
"""

from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from masterygate.engines.policy import ScoringPolicy
from masterygate.kernel.records import Attempt, AttemptContext


class ChallengeResult(BaseModel):
    passed: bool
    message: str
    accuracy: Optional[float] = None
    reasoning: Optional[float] = None
    attempts_considered: int = 0
    missing_concepts: List[str] = Field(default_factory=list)

    def evidence(self) -> Dict[str, object]:
        return self.model_dump(exclude={"message"})


class ChallengeAssessor(Protocol):
    def assess(
        self,
        attempts: Sequence[Attempt],
        required_concepts: FrozenSet[str],
        now: datetime,
    ) -> ChallengeResult:
        ...


class AssessmentEvidenceChallenge:
    """
    Passes when recent assessment attempts cover every required concept and
    clear the gate's accuracy and reasoning thresholds.
    """

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def assess(
        self,
        attempts: Sequence[Attempt],
        required_concepts: FrozenSet[str],
        now: datetime,
    ) -> ChallengeResult:
        cutoff = now - timedelta(days=self.policy.challenge_window_days)
        relevant = [
            a for a in attempts
            if a.context == AttemptContext.ASSESSMENT
            and a.timestamp >= cutoff
            and (not required_concepts or a.concept_id in required_concepts)
        ]
        if not relevant:
            return ChallengeResult(
                passed=False,
                message="No recent assessment attempts to verify mastery",
                missing_concepts=sorted(required_concepts),
            )

        covered = {a.concept_id for a in relevant}
        missing = sorted(required_concepts - covered)
        accuracy = sum(1 for a in relevant if a.correct) / len(relevant)
        reasoning = sum(a.reasoning_score for a in relevant) / len(relevant)
        thresholds = self.policy.gate_thresholds

        if missing:
            message = f"No recent assessment attempts for: {', '.join(missing)}"
        elif accuracy < thresholds.accuracy:
            message = (
                f"Assessment accuracy {accuracy:.0%} is below the required "
                f"{thresholds.accuracy:.0%}"
            )
        elif reasoning < thresholds.reasoning:
            message = (
                f"Assessment reasoning {reasoning:.0%} is below the required "
                f"{thresholds.reasoning:.0%}"
            )
        else:
            return ChallengeResult(
                passed=True,
                message="Challenge assessment passed",
                accuracy=accuracy,
                reasoning=reasoning,
                attempts_considered=len(relevant),
            )

        return ChallengeResult(
            passed=False,
            message=message,
            accuracy=accuracy,
            reasoning=reasoning,
            attempts_considered=len(relevant),
            missing_concepts=missing,
        )
