"""Domain types for similarity-based entity reconciliation."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

MergeType = Literal["auto", "manual", "batch"]
CandidateType = Literal["auto", "suggest"]


@dataclass(slots=True)
class EntityRelationship:
    """Outgoing edge held by a graph entity."""

    type: str
    target_id: str
    confidence: float = 1.0
    provenance: str | None = None
    established_on: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def key(self) -> tuple[str, str]:
        return (self.target_id, self.type)


@dataclass(slots=True)
class GraphEntity:
    """Entity as seen by the merge engine."""

    id: str
    name: str
    category: str
    type: str | None = None
    designation: str = "generic"
    confidence: float = 0.0
    conversation_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    relationships: list[EntityRelationship] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    merged_from: list[str] = field(default_factory=list)

    def snapshot(self) -> dict[str, Any]:
        """Deep, JSON-friendly copy of the entity."""

        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "type": self.type,
            "designation": self.designation,
            "confidence": self.confidence,
            "conversation_id": self.conversation_id,
            "attributes": copy.deepcopy(self.attributes),
            "relationships": [
                {
                    "type": r.type,
                    "target_id": r.target_id,
                    "confidence": r.confidence,
                    "provenance": r.provenance,
                    "established_on": r.established_on,
                    "metadata": copy.deepcopy(r.metadata),
                }
                for r in self.relationships
            ],
            "tags": list(self.tags),
            "merged_from": list(self.merged_from),
        }

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> "GraphEntity":
        return cls(
            id=str(snapshot["id"]),
            name=str(snapshot.get("name") or ""),
            category=str(snapshot.get("category") or ""),
            type=snapshot.get("type"),
            designation=str(snapshot.get("designation") or "generic"),
            confidence=float(snapshot.get("confidence") or 0.0),
            conversation_id=snapshot.get("conversation_id"),
            attributes=copy.deepcopy(snapshot.get("attributes") or {}),
            relationships=[EntityRelationship(**r) for r in snapshot.get("relationships") or []],
            tags=list(snapshot.get("tags") or []),
            merged_from=list(snapshot.get("merged_from") or []),
        )

    def copy(self) -> "GraphEntity":
        return GraphEntity.from_snapshot(self.snapshot())


@dataclass(slots=True)
class EntitySimilarity:
    """Component and combined similarity scores for a pair."""

    overall: float
    name: float
    category: float
    designation: float
    merge_confidence: float

    def to_dict(self) -> dict[str, float]:
        return {
            "overall": self.overall,
            "name": self.name,
            "category": self.category,
            "designation": self.designation,
            "merge_confidence": self.merge_confidence,
        }


@dataclass(slots=True)
class MergeCandidate:
    """Ordered pair proposed for merging."""

    primary: GraphEntity
    secondary: GraphEntity
    similarity: EntitySimilarity
    merge_type: CandidateType
    reasons: list[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.similarity.merge_confidence

    @property
    def auto_mergeable(self) -> bool:
        return self.merge_type == "auto"


@dataclass(slots=True)
class MergeRecord:
    """Append-only log entry for one merge."""

    id: str
    timestamp: datetime
    type: MergeType
    primary_entity: dict[str, Any]
    secondary_entity: dict[str, Any]
    similarity: dict[str, float]
    result_entity: dict[str, Any]
    reasons: list[str] = field(default_factory=list)
    domain: str | None = None
    undone: bool = False
    undone_at: datetime | None = None

    @property
    def primary_id(self) -> str:
        return str(self.primary_entity["id"])

    @property
    def secondary_id(self) -> str:
        return str(self.secondary_entity["id"])

    @property
    def impact(self) -> dict[str, Any]:
        before = self.primary_entity
        after = self.result_entity
        return {
            "confidence_change": float(after.get("confidence") or 0.0) - float(before.get("confidence") or 0.0),
            "relationships_added": len(after.get("relationships") or []) - len(before.get("relationships") or []),
            "tags_added": len(after.get("tags") or []) - len(before.get("tags") or []),
        }


@dataclass(slots=True)
class AutoMergeOutcome:
    """Entities left after an auto-merge pass plus what happened."""

    entities: list[GraphEntity]
    merges: list[MergeRecord]
    suggestions: list[MergeCandidate]


@dataclass(slots=True)
class MergePreview:
    """Effect of a merge computed on copies."""

    result: GraphEntity
    confidence_change: float
    relationships_added: int
    tags_added: int
