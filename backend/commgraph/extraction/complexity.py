"""Deterministic complexity scoring for incoming messages."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Literal

ComplexityLevel = Literal["low", "medium", "high"]

NUMBERS_PATTERN = re.compile(r"\$[\d,]+|\d+\s*(?:weeks?|days?|months?)|\d+%", re.IGNORECASE)
NAMES_PATTERN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
DECISIONS_PATTERN = re.compile(r"\b(?:approved?|rejected?|decided?|agreed?|confirmed?)\b", re.IGNORECASE)
TIMELINE_PATTERN = re.compile(
    r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|today|tomorrow|yesterday"
    r"|next\s+week|deadline|schedule)\b",
    re.IGNORECASE,
)


@dataclass(slots=True)
class ComplexityAnalysis:
    """Signals and score used to choose an extraction tier."""

    score: int
    level: ComplexityLevel
    word_count: int
    has_numbers: bool
    has_names: bool
    has_decisions: bool
    has_timeline: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def analyze_complexity(text: str, *, high_score: int = 4, medium_score: int = 2) -> ComplexityAnalysis:
    """Score a message on length and content signals."""

    word_count = len(text.split())
    has_numbers = NUMBERS_PATTERN.search(text) is not None
    has_names = NAMES_PATTERN.search(text) is not None
    has_decisions = DECISIONS_PATTERN.search(text) is not None
    has_timeline = TIMELINE_PATTERN.search(text) is not None

    score = 0
    if word_count > 100:
        score += 2
    elif word_count > 50:
        score += 1
    score += sum(1 for signal in (has_numbers, has_names, has_decisions, has_timeline) if signal)

    level: ComplexityLevel
    if score >= high_score:
        level = "high"
    elif score >= medium_score:
        level = "medium"
    else:
        level = "low"

    return ComplexityAnalysis(
        score=score,
        level=level,
        word_count=word_count,
        has_numbers=has_numbers,
        has_names=has_names,
        has_decisions=has_decisions,
        has_timeline=has_timeline,
    )
