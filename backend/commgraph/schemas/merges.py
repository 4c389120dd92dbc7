"""Merge endpoint schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from commgraph.entity_resolution.types import GraphEntity, MergeCandidate


class GraphEntityRead(BaseModel):
    id: str
    name: str
    category: str
    type: str | None = None
    designation: str
    confidence: float
    conversation_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    merged_from: list[str] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: GraphEntity) -> "GraphEntityRead":
        return cls(
            id=entity.id,
            name=entity.name,
            category=entity.category,
            type=entity.type,
            designation=entity.designation,
            confidence=entity.confidence,
            conversation_id=entity.conversation_id,
            tags=list(entity.tags),
            merged_from=list(entity.merged_from),
        )


class MergeCandidateRead(BaseModel):
    primary: GraphEntityRead
    secondary: GraphEntityRead
    similarity: dict[str, float]
    merge_type: str
    confidence: float
    reasons: list[str]

    @classmethod
    def from_candidate(cls, candidate: MergeCandidate) -> "MergeCandidateRead":
        return cls(
            primary=GraphEntityRead.from_entity(candidate.primary),
            secondary=GraphEntityRead.from_entity(candidate.secondary),
            similarity=candidate.similarity.to_dict(),
            merge_type=candidate.merge_type,
            confidence=candidate.confidence,
            reasons=list(candidate.reasons),
        )


class MergeRecordRead(BaseModel):
    """Serialized merge log row."""

    model_config = ConfigDict(from_attributes=True)

    merge_id: str
    domain: str
    merge_type: str
    primary_entity_id: str
    secondary_entity_id: str
    similarity_json: dict[str, float]
    reasons_json: list[str]
    merger_version: str
    timestamp: datetime
    undone: bool
    undone_at: datetime | None = None


class MergeRequest(BaseModel):
    primary_id: str = Field(..., min_length=1)
    secondary_id: str = Field(..., min_length=1)
    domain: str | None = None


class AutoMergeRunResult(BaseModel):
    merges: list[MergeRecordRead]
    suggestions: list[MergeCandidateRead]
    remaining_entities: int


class UndoMergeResult(BaseModel):
    record: MergeRecordRead
    lossless: bool
    restored_primary: dict[str, Any]
    restored_secondary: dict[str, Any]
