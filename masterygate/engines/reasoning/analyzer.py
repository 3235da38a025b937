"""
Reasoning Quality Analyzer - scores a learner's free-text justification.

Six criteria, each in [0, 1]:
- clarity: sentence structure, sequencing words, vague language, length
- logic: connectors, premise -> conclusion, sequential steps, fallacies
- evidence: evidence words, examples, numbers, expected concepts
- completeness: elements the question type calls for, depth of analysis
- relevance: coverage of the question's terms, support for the answer
- consistency: reasoning quality cross-checked against correctness

The analyzer is a strategy: anything implementing ReasoningAnalyzer can
replace the heuristic one without touching scoring or gating.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set

from pydantic import BaseModel, Field

from masterygate.engines.policy import ReasoningMinimums, ReasoningWeights
from masterygate.engines.reasoning import patterns as p
from masterygate.engines.reasoning.feedback import (
    SHORT_TEXT_MESSAGE,
    SHORT_TEXT_SUGGESTION,
    build_feedback,
)

CRITERIA = ("clarity", "logic", "evidence", "completeness", "relevance", "consistency")


class QuestionType(str, Enum):
    PROBLEM_SOLVING = "problem-solving"
    CONCEPT_EXPLANATION = "concept-explanation"
    ANALYSIS = "analysis"
    GENERAL = "general"


class QuestionContext(BaseModel):
    """What the analyzer knows about the question being answered."""

    text: str = ""
    expected_concepts: List[str] = Field(default_factory=list)
    question_type: QuestionType = QuestionType.GENERAL


class ReasoningAssessment(BaseModel):
    """Result of analyzing one justification."""

    is_valid: bool
    score: float = Field(ge=0.0, le=1.0)
    criteria: Dict[str, float] = Field(default_factory=dict)
    feedback: str
    improvement_areas: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    flaws: List[str] = Field(default_factory=list)


class ReasoningAnalyzer(Protocol):
    """Pluggable reasoning analysis backend."""

    def analyze(
        self,
        reasoning_text: str,
        question: QuestionContext,
        answer: Optional[Any],
        is_correct: bool,
    ) -> ReasoningAssessment:
        ...


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class HeuristicReasoningAnalyzer:
    """
    Keyword and pattern based analyzer.

    Scores are heuristics over surface features of the text; no semantic
    understanding is attempted.
    """

    def __init__(
        self,
        minimums: Optional[ReasoningMinimums] = None,
        weights: Optional[ReasoningWeights] = None,
        min_length: int = 5,
        strength_threshold: float = 0.8,
    ):
        self.minimums = minimums or ReasoningMinimums()
        self.weights = weights or ReasoningWeights()
        self.min_length = min_length
        self.strength_threshold = strength_threshold

    def analyze(
        self,
        reasoning_text: str,
        question: QuestionContext,
        answer: Optional[Any],
        is_correct: bool,
    ) -> ReasoningAssessment:
        text = (reasoning_text or "").strip()
        if len(text) < self.min_length:
            return ReasoningAssessment(
                is_valid=False,
                score=0.0,
                criteria={name: 0.0 for name in CRITERIA},
                feedback=SHORT_TEXT_MESSAGE,
                improvement_areas=["completeness"],
                suggestions=[SHORT_TEXT_SUGGESTION],
            )

        flaws = self.detect_flaws(text)
        criteria = {
            "clarity": self.assess_clarity(text),
            "logic": self.assess_logic(text, flaws),
            "evidence": self.assess_evidence(text, question),
            "completeness": self.assess_completeness(text, question),
            "relevance": self.assess_relevance(text, question, answer),
            "consistency": self.assess_consistency(text, is_correct),
        }

        weights = self.weights.as_dict()
        minimums = self.minimums.as_dict()
        score = _clamp(sum(criteria[name] * weights[name] for name in CRITERIA))
        is_valid = all(criteria[name] >= minimums[name] for name in CRITERIA)

        feedback = build_feedback(
            criteria, minimums, weights, is_correct, self.strength_threshold
        )
        return ReasoningAssessment(
            is_valid=is_valid,
            score=score,
            criteria=criteria,
            feedback=feedback.message,
            improvement_areas=feedback.improvement_areas,
            suggestions=feedback.suggestions,
            strengths=feedback.strengths,
            flaws=flaws,
        )

    # ── Criteria ────────────────────────────────────────────────────────

    def assess_clarity(self, text: str) -> float:
        score = 0.5

        sentences = [s for s in p.SENTENCE_SPLIT_RE.split(text) if s.strip()]
        if len(sentences) > 1:
            score += 0.1

        score += 0.05 * p.count_present(p.CLARITY_MARKERS, text)
        score -= 0.05 * p.count_present(p.VAGUE_PHRASES, text)

        word_count = len(text.split())
        if 15 <= word_count <= 100:
            score += 0.1
        elif word_count < 10:
            score -= 0.2
        elif word_count > 150:
            score -= 0.1

        return _clamp(score)

    def assess_logic(self, text: str, flaws: Optional[List[str]] = None) -> float:
        score = 0.3

        for connectors in p.CONNECTORS.values():
            score += min(p.count_present(connectors, text) * 0.1, 0.3)

        if self.has_premise_conclusion(text):
            score += 0.2
        if self.has_sequential_steps(text):
            score += 0.15

        if flaws is None:
            flaws = self.detect_flaws(text)
        score -= 0.1 * len(flaws)

        return _clamp(score)

    def assess_evidence(self, text: str, question: QuestionContext) -> float:
        score = 0.3

        score += 0.1 * p.count_present(p.CONNECTORS["evidence"], text)
        score += 0.1 * p.count_present(p.EXAMPLE_MARKERS, text)
        if p.NUMBER_RE.search(text):
            score += 0.1

        mentioned = self.mentioned_concepts(text, question)
        score += min(len(mentioned) * 0.05, 0.2)

        score -= 0.05 * len(self.unsupported_claims(text))

        return _clamp(score)

    def assess_completeness(self, text: str, question: QuestionContext) -> float:
        score = 0.4

        elements = p.QUESTION_TYPE_ELEMENTS.get(question.question_type.value, [])
        if elements:
            addressed = [
                element for element in elements
                if p.any_present(p.ELEMENT_KEYWORDS[element], text)
            ]
            score += (len(addressed) / len(elements)) * 0.4

        score += self.reasoning_depth(text) * 0.2

        return _clamp(score)

    def assess_relevance(
        self,
        text: str,
        question: QuestionContext,
        answer: Optional[Any],
    ) -> float:
        score = 0.5

        terms = self.extract_keywords(question.text) | {
            c.lower() for c in question.expected_concepts if c.strip()
        }
        if terms:
            lowered = text.lower()
            found = sum(1 for term in terms if term in lowered)
            # Three relevant terms count as full coverage
            score += min(1.0, found / min(len(terms), 3)) * 0.3
        else:
            score += 0.15

        score += self.answer_support(text, answer) * 0.2

        return _clamp(score)

    def assess_consistency(self, text: str, is_correct: bool) -> float:
        score = 0.6

        score -= 0.1 * len(p.CONTRADICTION_RE.findall(text))

        quality = self.inherent_quality(text)
        if is_correct and quality > 0.7:
            score += 0.2
        elif not is_correct and quality < 0.4:
            score += 0.1
        elif is_correct and quality < 0.4:
            # Right answer, weak reasoning: likely a guess
            score -= 0.3
        elif not is_correct and quality > 0.7:
            score += 0.15

        return _clamp(score)

    # ── Signals ─────────────────────────────────────────────────────────

    def has_premise_conclusion(self, text: str) -> bool:
        return p.any_present(p.PREMISE_MARKERS, text) and p.any_present(p.CONCLUSION_MARKERS, text)

    def has_sequential_steps(self, text: str) -> bool:
        return p.count_present(p.SEQUENCE_MARKERS, text) >= 2

    def detect_flaws(self, text: str) -> List[str]:
        flaws = [name for name, pattern in p.FALLACY_PATTERNS if pattern.search(text)]

        supported = p.any_present(p.SUPPORT_MARKERS, text)
        if p.ABSOLUTE_RE.search(text) and not supported:
            flaws.append("unsupported-absolute")

        has_evidence = p.any_present(p.CONNECTORS["evidence"], text) or p.any_present(
            p.EXAMPLE_MARKERS, text
        )
        if p.EMOTIONAL_RE.search(text) and not has_evidence:
            flaws.append("emotional")

        if (
            p.EITHER_RE.search(text)
            and p.OR_RE.search(text)
            and not p.HEDGE_ALTERNATIVE_RE.search(text)
        ):
            flaws.append("false-dichotomy")

        return flaws

    def unsupported_claims(self, text: str) -> List[str]:
        if p.any_present(p.SUPPORT_MARKERS, text):
            return []
        return [
            f"absolute-claim-{word}"
            for word, pattern in p.ABSOLUTE_CLAIMS.items()
            if pattern.search(text)
        ]

    def mentioned_concepts(self, text: str, question: QuestionContext) -> List[str]:
        lowered = text.lower()
        return [c for c in question.expected_concepts if c.strip() and c.lower() in lowered]

    def reasoning_depth(self, text: str) -> float:
        depth = 0.2 * p.count_present(p.DEPTH_MARKERS, text)
        lowered = text.lower()
        if "because" in lowered and "therefore" in lowered:
            depth += 0.1
        if p.any_present(p.COMPARISON_MARKERS, text):
            depth += 0.1
        return min(1.0, depth)

    def answer_support(self, text: str, answer: Optional[Any]) -> float:
        if isinstance(answer, bool) or answer is None:
            return 0.5
        if isinstance(answer, (int, float)):
            has_numbers = bool(p.NUMBER_RE.search(text))
            has_calculation = bool(p.CALCULATION_RE.search(text))
            return (0.5 if has_numbers else 0.0) + (0.5 if has_calculation else 0.0)
        answer_text = str(answer).strip().lower()
        if answer_text and answer_text in text.lower():
            return 1.0
        return 0.5

    def inherent_quality(self, text: str) -> float:
        """Quality of the text regardless of whether the answer was right."""
        structure = 0.3 if self.has_premise_conclusion(text) else 0.0
        return self.assess_clarity(text) * 0.5 + structure + self.reasoning_depth(text) * 0.2

    def extract_keywords(self, text: str) -> Set[str]:
        words = p.WORD_RE.findall((text or "").lower())
        return {w for w in words if len(w) > 3 and w not in p.STOP_WORDS}
