"""
Feedback texts for reasoning assessments.
"""

import math
from typing import Dict, List, Tuple

from pydantic import BaseModel, Field

SHORT_TEXT_MESSAGE = "Please provide a more detailed explanation of your reasoning."
SHORT_TEXT_SUGGESTION = "Explain your thought process step by step."

# Ordered from mild to severe; picked by how far the score is below 1.0
IMPROVEMENT_SUGGESTIONS: Dict[str, List[str]] = {
    "clarity": [
        'Use clearer language and avoid vague terms like "this" or "it"',
        "Organize your thoughts into clear sentences",
        "Define technical terms when you use them",
    ],
    "logic": [
        'Use logical connectors like "because", "therefore", "since"',
        "Present your ideas in a step-by-step sequence",
        "Make sure each point follows from the previous one",
    ],
    "evidence": [
        "Support your claims with specific examples or data",
        "Reference relevant concepts or principles",
        "Explain how your evidence leads to your conclusion",
    ],
    "completeness": [
        "Address all parts of the question",
        "Explain each step of your reasoning",
        "Consider alternative explanations or approaches",
    ],
    "relevance": [
        "Focus on aspects directly related to the question",
        "Connect your reasoning to the specific problem context",
        "Avoid tangential or unrelated information",
    ],
    "consistency": [
        "Check that all parts of your explanation agree with each other",
        "Ensure your reasoning supports your final answer",
        "Avoid contradictory statements",
    ],
}

STRENGTH_MESSAGES: Dict[str, str] = {
    "clarity": "Your explanation is clear and easy to follow.",
    "logic": "Your logical structure is excellent.",
    "evidence": "You provide strong evidence for your reasoning.",
    "completeness": "You address all important aspects thoroughly.",
    "relevance": "Your reasoning directly addresses the question.",
    "consistency": "Your explanation is internally consistent.",
}


class Feedback(BaseModel):
    """Human-readable outcome of one assessment."""

    message: str
    improvement_areas: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)


def suggestion_for(criterion: str, score: float) -> str:
    options = IMPROVEMENT_SUGGESTIONS.get(criterion)
    if not options:
        return "Try to improve this aspect of your reasoning."
    index = min(math.floor((1 - score) * len(options)), len(options) - 1)
    return options[max(index, 0)]


def build_feedback(
    criteria: Dict[str, float],
    minimums: Dict[str, float],
    weights: Dict[str, float],
    is_correct: bool,
    strength_threshold: float = 0.8,
) -> Feedback:
    """
    Build feedback for a scored justification.

    Improvement areas are ranked by weighted shortfall below the minimum,
    largest first.
    """
    strengths = [
        STRENGTH_MESSAGES.get(name, "This aspect of your reasoning is strong.")
        for name, score in criteria.items()
        if score >= strength_threshold
    ]

    shortfalls: List[Tuple[float, str]] = []
    for name, minimum in minimums.items():
        score = criteria.get(name, 0.0)
        if score < minimum:
            shortfalls.append(((minimum - score) * weights.get(name, 0.0), name))
    shortfalls.sort(key=lambda item: item[0], reverse=True)

    areas = [name for _, name in shortfalls]
    suggestions = [suggestion_for(name, criteria.get(name, 0.0)) for name in areas]

    if strengths and not areas:
        message = "Excellent reasoning! " + strengths[0]
    elif not areas:
        message = "Good reasoning overall. Your explanation demonstrates solid understanding."
    elif len(areas) == 1:
        message = (
            "Your reasoning shows understanding, but could be improved by "
            f"focusing on {areas[0]}."
        )
    else:
        message = f"Your reasoning needs improvement in several areas: {', '.join(areas)}."

    logic = criteria.get("logic", 0.0)
    if is_correct and logic < 0.6:
        message += (
            " While your answer is correct, strengthening your logical explanation "
            "will help you tackle harder problems."
        )
    elif not is_correct and logic > 0.8:
        message += (
            " Your reasoning process is strong; check your calculation or "
            "reconsider your assumptions."
        )

    return Feedback(
        message=message,
        improvement_areas=areas,
        suggestions=suggestions,
        strengths=strengths,
    )
