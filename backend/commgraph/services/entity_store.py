"""SQLAlchemy-backed storage for extraction results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from commgraph.config import get_settings
from commgraph.entity_resolution.types import EntityRelationship, GraphEntity
from commgraph.extraction.types import ExtractionResult
from commgraph.models.entity_record import EntityRecord
from commgraph.schema.entity_types import (
    TYPE_BY_CATEGORY,
    category_for_type,
    entity_display_name,
    normalize_entity_type,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EntityQuery:
    """Filter for stored extraction records; unset fields match everything."""

    entity_type: str | None = None
    conversation_id: str | None = None
    text_substring: str | None = None
    min_confidence: float | None = None
    domain: str | None = None
    limit: int | None = None


@dataclass(slots=True)
class StoreStats:
    entity_count: int
    record_count: int
    conversation_count: int
    last_updated: datetime | None


def store_entities(
    db: Session,
    conversation_id: str,
    extraction: ExtractionResult | Mapping[str, list[dict[str, Any]]],
    metadata: Mapping[str, Any] | None = None,
    *,
    domain: str | None = None,
) -> int:
    """Persist one extraction and return the new record id."""

    if isinstance(extraction, ExtractionResult):
        entities = {category: [dict(item) for item in items] for category, items in extraction.entities.items()}
        relationships = [relationship.to_dict() for relationship in extraction.relationships]
        summary = extraction.summary
        record_metadata = extraction.metadata.to_dict()
        confidence = extraction.metadata.confidence
        is_fallback = extraction.metadata.is_fallback
    else:
        entities = {category: [dict(item) for item in items] for category, items in extraction.items()}
        relationships = []
        summary = ""
        record_metadata = {}
        confidence = _mean_confidence(entities)
        is_fallback = False
    record_metadata.update(metadata or {})

    record = EntityRecord(
        conversation_id=conversation_id,
        domain=domain or get_settings().default_domain,
        entities_json=entities,
        relationships_json=relationships,
        summary=summary,
        metadata_json=record_metadata,
        confidence=float(confidence),
        entity_count=sum(len(items) for items in entities.values()),
        is_fallback=is_fallback,
    )
    db.add(record)
    db.flush()
    logger.info(
        "store.entities_stored record_id=%s conversation_id=%s entities=%d relationships=%d",
        record.id,
        conversation_id,
        record.entity_count,
        len(relationships),
    )
    return record.id


def get_entity_record(db: Session, record_id: int) -> EntityRecord | None:
    return db.get(EntityRecord, record_id)


def query_entities(db: Session, query: EntityQuery) -> list[EntityRecord]:
    """Return stored records matching every set filter, newest first."""

    stmt = select(EntityRecord).order_by(EntityRecord.created_at.desc(), EntityRecord.id.desc())
    if query.conversation_id is not None:
        stmt = stmt.where(EntityRecord.conversation_id == query.conversation_id)
    if query.domain is not None:
        stmt = stmt.where(EntityRecord.domain == query.domain)
    if query.min_confidence is not None:
        stmt = stmt.where(EntityRecord.confidence >= query.min_confidence)
    records = list(db.scalars(stmt).all())

    category = None
    if query.entity_type:
        entity_type = normalize_entity_type(query.entity_type)
        category = category_for_type(entity_type) if entity_type else query.entity_type
    needle = query.text_substring.strip().lower() if query.text_substring else ""

    matched: list[EntityRecord] = []
    for record in records:
        if category is not None and not record.entities_json.get(category):
            continue
        if needle and not _record_matches_text(record, needle):
            continue
        matched.append(record)
        if query.limit is not None and len(matched) >= query.limit:
            break
    return matched


def list_all_entities(db: Session, *, domain: str | None = None) -> list[EntityRecord]:
    return query_entities(db, EntityQuery(domain=domain))


def get_store_stats(db: Session) -> StoreStats:
    record_count, entity_count, conversation_count, last_updated = db.execute(
        select(
            func.count(EntityRecord.id),
            func.coalesce(func.sum(EntityRecord.entity_count), 0),
            func.count(func.distinct(EntityRecord.conversation_id)),
            func.max(EntityRecord.created_at),
        )
    ).one()
    return StoreStats(
        entity_count=int(entity_count or 0),
        record_count=int(record_count or 0),
        conversation_count=int(conversation_count or 0),
        last_updated=last_updated,
    )


def flatten_record(record: EntityRecord) -> list[GraphEntity]:
    """Expand a stored record into graph entities with stable ids.

    Ids have the form ``"{record_id}:{category}:{index}"``. Relationships are
    attached to the entity whose name matches their source; targets resolve
    to sibling ids by name and otherwise keep the raw target name.
    """

    entities: list[GraphEntity] = []
    ids_by_name: dict[str, str] = {}
    for category, items in record.entities_json.items():
        entity_type = TYPE_BY_CATEGORY.get(category)
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            name = entity_display_name(item, entity_type)
            entity_id = f"{record.id}:{category}:{index}"
            attributes = {k: v for k, v in item.items() if k not in ("confidence", "tags", "designation")}
            tags = item.get("tags")
            entities.append(
                GraphEntity(
                    id=entity_id,
                    name=name,
                    category=category,
                    type=entity_type,
                    designation=str(item.get("designation") or "generic"),
                    confidence=float(item.get("confidence") or 0.0),
                    conversation_id=record.conversation_id,
                    attributes=attributes,
                    tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
                )
            )
            if name:
                ids_by_name.setdefault(name.lower(), entity_id)

    by_id = {entity.id: entity for entity in entities}
    for raw in record.relationships_json:
        source_id = ids_by_name.get(str(raw.get("source") or "").lower())
        if source_id is None:
            continue
        target_name = str(raw.get("target") or "")
        created_at = raw.get("created_at")
        by_id[source_id].relationships.append(
            EntityRelationship(
                type=str(raw.get("type") or "related_to"),
                target_id=ids_by_name.get(target_name.lower(), target_name),
                confidence=float(raw.get("confidence") or 0.0),
                provenance=raw.get("provenance"),
                established_on=str(created_at) if created_at else None,
                metadata=dict(raw.get("metadata") or {}),
            )
        )
    return entities


def _record_matches_text(record: EntityRecord, needle: str) -> bool:
    if needle in (record.summary or "").lower():
        return True
    for items in record.entities_json.values():
        for item in items:
            if not isinstance(item, dict):
                continue
            for value in item.values():
                if isinstance(value, str) and needle in value.lower():
                    return True
    return False


def _mean_confidence(entities: Mapping[str, list[dict[str, Any]]]) -> float:
    values = [
        float(item.get("confidence") or 0.0)
        for items in entities.values()
        for item in items
        if isinstance(item, dict)
    ]
    return sum(values) / len(values) if values else 0.0
