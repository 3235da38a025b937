"""
Mastery Engine - concept progress, mastery scoring and spaced review.

Dimensions and weights:
- Accuracy (30%): last 5 attempts
- Consistency (25%): 1 - 2 * variance over the last 10 attempts
- Reasoning (20%): mean of the last 5 reasoning scores
- Retention (15%): accuracy after breaks longer than a day
- Application (10%): accuracy of assessment attempts

Review intervals: 1, 3, 7, 14, 30, 60 days.
"""

from masterygate.engines.mastery.aggregator import ConceptProgressAggregator
from masterygate.engines.mastery.analytics import PerformanceAnalytics, PerformanceAnalyzer
from masterygate.engines.mastery.scheduler import ReviewItem, SpacedRepetitionScheduler
from masterygate.engines.mastery.scorer import MasteryEvaluation, MasteryScorer

__all__ = [
    "ConceptProgressAggregator",
    "MasteryEvaluation",
    "MasteryScorer",
    "PerformanceAnalytics",
    "PerformanceAnalyzer",
    "ReviewItem",
    "SpacedRepetitionScheduler",
]
