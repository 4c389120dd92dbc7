"""Typed extraction outputs independent of persistence."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Provenance(str, Enum):
    """How a relationship entered the graph."""

    LLM_EXTRACTION = "llm_extraction"
    BATCH_PROCESSING = "batch_processing"
    MANUAL = "manual"


@dataclass(slots=True)
class ExtractedRelationship:
    """Typed edge between two named entities."""

    type: str
    source: str
    target: str
    confidence: float
    source_type: str = "unknown"
    target_type: str = "unknown"
    metadata: dict[str, Any] = field(default_factory=dict)
    provenance: str | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        return payload


@dataclass(slots=True)
class ExtractionMetadata:
    """Bookkeeping attached to every extraction result."""

    confidence: float = 0.0
    model: str | None = None
    provider: str | None = None
    strategy: str | None = None
    tier: str | None = None
    complexity: dict[str, Any] | None = None
    duration_ms: float = 0.0
    cost: float = 0.0
    attempts: int = 0
    prompt_version: str | None = None
    is_fallback: bool = False
    is_basic: bool = False
    validation_warnings: list[str] = field(default_factory=list)
    dropped_entities: int = 0
    dropped_relationships: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ExtractionResult:
    """Entities grouped by category plus typed relationships."""

    entities: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    relationships: list[ExtractedRelationship] = field(default_factory=list)
    summary: str = ""
    metadata: ExtractionMetadata = field(default_factory=ExtractionMetadata)

    @property
    def entity_count(self) -> int:
        return sum(len(items) for items in self.entities.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": {category: [dict(item) for item in items] for category, items in self.entities.items()},
            "relationships": [relationship.to_dict() for relationship in self.relationships],
            "summary": self.summary,
            "metadata": self.metadata.to_dict(),
        }
