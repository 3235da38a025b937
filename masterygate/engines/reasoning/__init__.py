"""
Reasoning Engine - heuristic scoring of learner justifications.
"""

from masterygate.engines.reasoning.analyzer import (
    CRITERIA,
    HeuristicReasoningAnalyzer,
    QuestionContext,
    QuestionType,
    ReasoningAnalyzer,
    ReasoningAssessment,
)

__all__ = [
    "CRITERIA",
    "HeuristicReasoningAnalyzer",
    "QuestionContext",
    "QuestionType",
    "ReasoningAnalyzer",
    "ReasoningAssessment",
]
