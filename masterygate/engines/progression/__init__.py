"""
Progression Engine - level advancement gate.

Stages:
1. Eligibility (no skipping, cooldown after 4 blocks in 24h)
2. Mastery evidence
3. Retention & application
4. Strict evaluation + challenge assessment
"""

from masterygate.engines.progression.challenge import (
    AssessmentEvidenceChallenge,
    ChallengeAssessor,
    ChallengeResult,
)
from masterygate.engines.progression.gate import LearnerSnapshot, ProgressionGate
from masterygate.engines.progression.recommendations import ProgressionAdvice, advise
from masterygate.engines.progression.requirements import (
    CONSERVATIVE_REQUIREMENT,
    LevelRequirement,
    LevelRequirementTable,
)

__all__ = [
    "AssessmentEvidenceChallenge",
    "ChallengeAssessor",
    "ChallengeResult",
    "CONSERVATIVE_REQUIREMENT",
    "LearnerSnapshot",
    "LevelRequirement",
    "LevelRequirementTable",
    "ProgressionAdvice",
    "ProgressionGate",
    "advise",
]
