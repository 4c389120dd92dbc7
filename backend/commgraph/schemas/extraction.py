"""Extraction endpoint schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from commgraph.extraction.selector import BatchItemResult, BatchMessage
from commgraph.extraction.strategies import ExtractionOptions
from commgraph.extraction.types import ExtractionResult


class ExtractionOptionsIn(BaseModel):
    """Caller hints accepted by the extraction endpoints."""

    communication_type: str = "sms"
    force_high_accuracy: bool = False
    urgent: bool = False
    prefer_local: bool = False
    context: str = ""
    domain: str | None = None

    def to_options(self) -> ExtractionOptions:
        return ExtractionOptions(**self.model_dump())


class ExtractionRequest(BaseModel):
    text: str = Field(..., min_length=1)
    options: ExtractionOptionsIn = Field(default_factory=ExtractionOptionsIn)


class BatchMessageIn(BaseModel):
    text: str = Field(..., min_length=1)
    id: str | None = None
    communication_type: str | None = None

    def to_message(self) -> BatchMessage:
        return BatchMessage(text=self.text, id=self.id, communication_type=self.communication_type)


class BatchExtractionRequest(BaseModel):
    messages: list[BatchMessageIn] = Field(..., min_length=1)
    options: ExtractionOptionsIn = Field(default_factory=ExtractionOptionsIn)


class ExtractionRunResult(BaseModel):
    """Extraction execution summary."""

    record_id: int
    conversation_id: str
    entities: dict[str, list[dict[str, Any]]]
    relationships: list[dict[str, Any]]
    summary: str
    metadata: dict[str, Any]

    @classmethod
    def from_result(cls, record_id: int, conversation_id: str, result: ExtractionResult) -> "ExtractionRunResult":
        payload = result.to_dict()
        return cls(record_id=record_id, conversation_id=conversation_id, **payload)


class BatchItemRead(BaseModel):
    id: str
    success: bool
    record_id: int | None = None
    error: str | None = None
    entity_count: int = 0
    is_fallback: bool = False

    @classmethod
    def from_outcome(cls, outcome: BatchItemResult, record_id: int | None) -> "BatchItemRead":
        result = outcome.result
        return cls(
            id=outcome.id,
            success=outcome.success,
            record_id=record_id,
            error=outcome.error,
            entity_count=result.entity_count if result is not None else 0,
            is_fallback=result.metadata.is_fallback if result is not None else False,
        )


class BatchExtractionRunResult(BaseModel):
    conversation_id: str
    items: list[BatchItemRead]
