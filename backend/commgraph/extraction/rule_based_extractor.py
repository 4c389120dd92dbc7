"""Deterministic fallback extractor using simple regex rules."""

from __future__ import annotations

import re
from typing import Any

from commgraph.extraction.types import ExtractionMetadata, ExtractionResult

NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
COST_PATTERN = re.compile(r"\$(?P<amount>\d[\d,]*(?:\.\d{2})?)(?P<suffix>[kK])?\b")

NAME_STOPWORDS = {
    "The",
    "And",
    "But",
    "For",
    "This",
    "That",
    "JSON",
    "Hey",
    "Hi",
    "Hello",
    "Thanks",
    "Need",
    "Please",
}
MAX_NAMES = 3
NAME_CONFIDENCE = 0.5
COST_CONFIDENCE = 0.6
BASIC_RESULT_CONFIDENCE = 0.3
RULE_BASED_STRATEGY = "rule_based"


class RuleBasedExtractor:
    """Capitalized-name and currency sweep used when no model output is usable."""

    def extract(self, text: str) -> dict[str, list[dict[str, Any]]]:
        """Extract people and costs from free text."""

        entities: dict[str, list[dict[str, Any]]] = {"people": [], "costs": []}
        if not text or not text.strip():
            return entities

        for name in self._candidate_names(text):
            entities["people"].append({"name": name, "confidence": NAME_CONFIDENCE})

        seen_amounts: set[float] = set()
        for match in COST_PATTERN.finditer(text):
            amount = self._parse_amount(match.group("amount"), match.group("suffix"))
            if amount is None or amount in seen_amounts:
                continue
            seen_amounts.add(amount)
            entities["costs"].append(
                {
                    "amount": amount,
                    "currency": "USD",
                    "type": "estimate",
                    "confidence": COST_CONFIDENCE,
                }
            )
        return entities

    def build_result(
        self,
        text: str,
        *,
        summary: str = "Basic rule-based extraction (fallback)",
        confidence: float = BASIC_RESULT_CONFIDENCE,
        is_basic: bool = True,
    ) -> ExtractionResult:
        """Wrap the sweep in an extraction result flagged as a fallback."""

        return ExtractionResult(
            entities=self.extract(text),
            relationships=[],
            summary=summary,
            metadata=ExtractionMetadata(
                confidence=confidence,
                strategy=RULE_BASED_STRATEGY,
                is_fallback=True,
                is_basic=is_basic,
            ),
        )

    def _candidate_names(self, text: str) -> list[str]:
        names: list[str] = []
        for match in NAME_PATTERN.finditer(text):
            candidate = self._clean_phrase(match.group(0))
            tokens = candidate.split(" ")
            # Drop leading greeting words so "Hey Mike" yields "Mike".
            while tokens and tokens[0] in NAME_STOPWORDS:
                tokens.pop(0)
            candidate = " ".join(tokens)
            if len(candidate) <= 2 or candidate in NAME_STOPWORDS or candidate in names:
                continue
            names.append(candidate)
            if len(names) == MAX_NAMES:
                break
        return names

    @staticmethod
    def _parse_amount(raw: str, suffix: str | None) -> float | None:
        try:
            amount = float(raw.replace(",", ""))
        except ValueError:
            return None
        if suffix:
            amount *= 1000
        return amount

    @staticmethod
    def _clean_phrase(value: str) -> str:
        """Normalize extracted phrase whitespace and punctuation."""

        return re.sub(r"\s+", " ", value).strip(" .,:;\"'")


def extract_basic_entities(text: str) -> dict[str, list[dict[str, Any]]]:
    return RuleBasedExtractor().extract(text)


def build_basic_result(text: str, **kwargs: Any) -> ExtractionResult:
    return RuleBasedExtractor().build_result(text, **kwargs)
