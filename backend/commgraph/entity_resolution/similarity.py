"""Deterministic similarity helpers for entity reconciliation."""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

from commgraph.entity_resolution.types import EntitySimilarity, GraphEntity

_MULTISPACE_RE = re.compile(r"\s+")

NAME_WEIGHT = 0.8
CATEGORY_WEIGHT = 0.1
DESIGNATION_WEIGHT = 0.1


def normalize_entity_text(value: str | None) -> str:
    """Case-fold and collapse whitespace for name comparison."""

    if not value:
        return ""
    return _MULTISPACE_RE.sub(" ", value.strip().lower())


def levenshtein_similarity(left: str, right: str) -> float:
    """Return ``1 - distance / max(len)``; two empty strings are identical."""

    longer = max(len(left), len(right))
    if longer == 0:
        return 1.0
    return (longer - Levenshtein.distance(left, right)) / longer


def name_similarity(left: str | None, right: str | None) -> float:
    return levenshtein_similarity(normalize_entity_text(left), normalize_entity_text(right))


def merge_confidence(left: GraphEntity, right: GraphEntity, name_score: float) -> float:
    """Confidence that two entities are the same real-world thing."""

    score = name_score * 0.6
    if left.category == right.category:
        score += 0.2
    if left.conversation_id is not None and left.conversation_id == right.conversation_id:
        score += 0.1
    score += ((left.confidence + right.confidence) / 2.0) * 0.1
    return min(score, 1.0)


def compute_similarity(left: GraphEntity, right: GraphEntity) -> EntitySimilarity:
    """Score a pair; symmetric in its arguments."""

    name_score = name_similarity(left.name, right.name)
    category_score = 1.0 if left.category == right.category else 0.0
    designation_score = 1.0 if left.designation == right.designation else 0.0
    overall = (
        NAME_WEIGHT * name_score
        + CATEGORY_WEIGHT * category_score
        + DESIGNATION_WEIGHT * designation_score
    )
    return EntitySimilarity(
        overall=overall,
        name=name_score,
        category=category_score,
        designation=designation_score,
        merge_confidence=merge_confidence(left, right, name_score),
    )
