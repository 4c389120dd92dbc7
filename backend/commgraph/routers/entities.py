"""Stored entity query routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from commgraph.db.dependencies import get_db
from commgraph.schemas.common import ApiResponse
from commgraph.schemas.entity import EntityRecordRead, StoreStatsRead
from commgraph.services.entity_store import EntityQuery, get_store_stats, query_entities


router = APIRouter(prefix="/entities")


@router.get("", response_model=ApiResponse[list[EntityRecordRead]])
def list_entities(
    entity_type: str | None = Query(default=None),
    conversation_id: str | None = Query(default=None),
    q: str | None = Query(default=None, description="Substring match on entity text and summary"),
    min_confidence: float | None = Query(default=None, ge=0.0, le=1.0),
    domain: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ApiResponse[list[EntityRecordRead]]:
    records = query_entities(
        db,
        EntityQuery(
            entity_type=entity_type,
            conversation_id=conversation_id,
            text_substring=q,
            min_confidence=min_confidence,
            domain=domain,
            limit=limit,
        ),
    )
    return ApiResponse(data=[EntityRecordRead.model_validate(record) for record in records])


@router.get("/stats", response_model=ApiResponse[StoreStatsRead])
def entity_stats(db: Session = Depends(get_db)) -> ApiResponse[StoreStatsRead]:
    return ApiResponse(data=StoreStatsRead.model_validate(get_store_stats(db)))
