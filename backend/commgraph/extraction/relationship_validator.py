"""Admission gate for extracted relationships."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable

from commgraph.extraction.types import ExtractedRelationship, Provenance
from commgraph.schema.relationship_registry import RelationshipRegistry

logger = logging.getLogger(__name__)

DEFAULT_MIN_RELATIONSHIP_CONFIDENCE = 0.7


@dataclass(slots=True)
class RelationshipAdmission:
    """Admitted relationships plus drop counters."""

    admitted: list[ExtractedRelationship] = field(default_factory=list)
    dropped_unknown_type: int = 0
    dropped_low_confidence: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return self.dropped_unknown_type + self.dropped_low_confidence


class RelationshipValidator:
    """Keep relationships whose type is registered and confidence clears the threshold."""

    def __init__(
        self,
        registry: RelationshipRegistry | None = None,
        *,
        min_confidence: float = DEFAULT_MIN_RELATIONSHIP_CONFIDENCE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._registry = registry or RelationshipRegistry()
        self._min_confidence = min_confidence
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def registry(self) -> RelationshipRegistry:
        return self._registry

    @property
    def min_confidence(self) -> float:
        return self._min_confidence

    def admit(
        self,
        relationships: Iterable[ExtractedRelationship],
        *,
        provenance: Provenance | str = Provenance.LLM_EXTRACTION,
    ) -> RelationshipAdmission:
        """Filter relationships and stamp the survivors with time and provenance."""

        provenance_value = provenance.value if isinstance(provenance, Provenance) else str(provenance)
        outcome = RelationshipAdmission()
        for relationship in relationships:
            if not self._registry.validate_relationship_type(relationship.type):
                message = f"Unknown relationship type: {relationship.type}"
                logger.warning(
                    "extraction.relationship_dropped reason=unknown_type type=%s source=%s target=%s",
                    relationship.type,
                    relationship.source,
                    relationship.target,
                )
                outcome.warnings.append(message)
                outcome.dropped_unknown_type += 1
                continue
            if relationship.confidence < self._min_confidence:
                logger.debug(
                    "extraction.relationship_dropped reason=low_confidence type=%s confidence=%.2f",
                    relationship.type,
                    relationship.confidence,
                )
                outcome.dropped_low_confidence += 1
                continue
            relationship.created_at = self._clock()
            relationship.provenance = provenance_value
            outcome.admitted.append(relationship)
        return outcome
