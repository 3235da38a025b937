"""
Keyword and regex patterns used by the heuristic reasoning analyzer.

All phrase patterns match on word boundaries and ignore case.
"""

import re
from typing import Dict, List, Tuple


def _phrase(phrase: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)", re.I)


def _phrases(*phrases: str) -> List[re.Pattern]:
    return [_phrase(p) for p in phrases]


def count_present(patterns: List[re.Pattern], text: str) -> int:
    """Number of distinct patterns found in text."""
    return sum(1 for p in patterns if p.search(text))


def any_present(patterns: List[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


# ── Logical connectors, by category ─────────────────────────────────────

CONNECTORS: Dict[str, List[re.Pattern]] = {
    "causal": _phrases("because", "due to", "caused by", "results in", "leads to"),
    "evidence": _phrases("shows", "demonstrates", "proves", "indicates", "supports"),
    "logical": _phrases("therefore", "thus", "consequently", "hence", "so"),
    "conditional": _phrases("if", "when", "unless", "provided that", "assuming"),
    "comparison": _phrases("similar to", "different from", "unlike", "whereas", "compared to"),
}

PREMISE_MARKERS = _phrases("given", "since", "because", "assuming")
CONCLUSION_MARKERS = _phrases("therefore", "thus", "so", "hence", "consequently")
SEQUENCE_MARKERS = _phrases("first", "next", "then", "finally", "step")

# ── Clarity ─────────────────────────────────────────────────────────────

CLARITY_MARKERS = _phrases("first", "next", "then", "finally", "in summary")
VAGUE_PHRASES = _phrases("this thing", "that stuff", "something", "it")
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

# ── Evidence and depth ──────────────────────────────────────────────────

EXAMPLE_MARKERS = _phrases("example", "instance", "case", "such as")
DEPTH_MARKERS = _phrases("analyze", "examine", "consider", "evaluate", "interpret")
COMPARISON_MARKERS = _phrases("compared to", "different from")
SUPPORT_MARKERS = _phrases("because", "since", "due to")
ABSOLUTE_CLAIMS: Dict[str, re.Pattern] = {w: _phrase(w) for w in ("always", "never")}
NUMBER_RE = re.compile(r"\d+")
CALCULATION_RE = re.compile(
    r"\b(?:calculat|comput|multipl|divid|add|subtract|sum|product)\w*", re.I
)

# ── Fallacies and flaws ─────────────────────────────────────────────────
# (name, compiled regex); a match subtracts from the logic score.

FALLACY_PATTERNS: List[Tuple[str, re.Pattern]] = [
    # The same two-word phrase on both sides of "because" within one sentence
    ("circular", re.compile(r"\b([a-z]{3,}\s+[a-z]{2,})\b[^.!?]*\bbecause\b[^.!?]*\b\1\b", re.I)),
    ("informal", re.compile(r"\b(?:kinda|sorta|whatever|gonna|wanna|dunno)\b|\blike,", re.I)),
    ("straw-man", re.compile(r"\b(?:people say|everyone thinks|everybody knows)\b", re.I)),
]

ABSOLUTE_RE = re.compile(r"\b(?:always|never|all|none)\b", re.I)
EMOTIONAL_RE = re.compile(r"\b(?:obviously|clearly|definitely)\b", re.I)
EITHER_RE = re.compile(r"\beither\b", re.I)
OR_RE = re.compile(r"\bor\b", re.I)
HEDGE_ALTERNATIVE_RE = re.compile(r"\bcould (?:also )?be\b", re.I)

# "X is Y ... X is not Y" style self-contradiction
CONTRADICTION_RE = re.compile(
    r"\b(?:is|are|was|were)\s+(\w{3,})\b.*\b(?:is|are|was|were)\s+not\s+\1\b", re.I | re.S
)

# ── Completeness elements, by question type ─────────────────────────────

ELEMENT_KEYWORDS: Dict[str, List[re.Pattern]] = {
    "method-selection": _phrases("method", "approach", "way", "technique", "formula"),
    "step-explanation": _phrases("first", "next", "then", "step"),
    "answer-verification": _phrases("check", "verify", "confirm", "test"),
    "definition": _phrases("means", "defined as", "refers to", "is called"),
    "examples": _phrases("example", "instance", "case", "such as"),
    "applications": _phrases("used", "applied", "applies to", "useful"),
    "evidence-evaluation": _phrases("evidence", "shows", "proves", "indicates"),
    "conclusion-drawing": _phrases("conclude", "therefore", "thus", "result"),
    "alternative-consideration": _phrases("alternatively", "could be", "might", "possible"),
    "cause-explanation": _phrases("because", "since", "due to", "leads to", "results in"),
    "conclusion": _phrases("therefore", "thus", "so", "hence", "result"),
    "support": _phrases("example", "shows", "such as", "evidence", "for instance"),
}

QUESTION_TYPE_ELEMENTS: Dict[str, List[str]] = {
    "problem-solving": ["method-selection", "step-explanation", "answer-verification"],
    "concept-explanation": ["definition", "examples", "applications"],
    "analysis": ["evidence-evaluation", "conclusion-drawing", "alternative-consideration"],
    "general": ["cause-explanation", "conclusion", "support"],
}

# ── Keyword extraction ──────────────────────────────────────────────────

WORD_RE = re.compile(r"\b\w+\b")
STOP_WORDS = frozenset((
    "the", "is", "at", "which", "on", "a", "an", "and", "or", "but", "this",
    "that", "with", "from", "what", "when", "where", "does", "have", "will",
    "your", "their", "there", "they", "then", "than", "into", "about",
))
