"""Stored entity record schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class EntityRecordRead(BaseModel):
    """Serialized stored extraction record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    domain: str
    entities_json: dict[str, list[dict[str, Any]]]
    relationships_json: list[dict[str, Any]]
    summary: str
    metadata_json: dict[str, Any]
    confidence: float
    entity_count: int
    is_fallback: bool
    created_at: datetime


class StoreStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_count: int
    record_count: int
    conversation_count: int
    last_updated: datetime | None = None
