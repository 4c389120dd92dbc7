"""Entity merge routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from commgraph.db.dependencies import get_db
from commgraph.entity_resolution.errors import EntityNotFound, MergeError, MergeRecordNotFound
from commgraph.schemas.common import ApiResponse
from commgraph.schemas.merges import (
    AutoMergeRunResult,
    MergeCandidateRead,
    MergeRecordRead,
    MergeRequest,
    UndoMergeResult,
)
from commgraph.services import merges as merge_service


router = APIRouter(prefix="/merges")


@router.get("/candidates", response_model=ApiResponse[list[MergeCandidateRead]])
def list_candidates(
    domain: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ApiResponse[list[MergeCandidateRead]]:
    return ApiResponse(data=merge_service.list_merge_candidates(db, domain=domain, limit=limit))


@router.post("/auto", response_model=ApiResponse[AutoMergeRunResult])
def auto_merge(
    domain: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[AutoMergeRunResult]:
    """Apply every auto-classified merge and return the remaining suggestions."""

    return ApiResponse(data=merge_service.run_auto_merges(db, domain=domain))


@router.post("", response_model=ApiResponse[MergeRecordRead])
def merge(payload: MergeRequest, db: Session = Depends(get_db)) -> ApiResponse[MergeRecordRead]:
    try:
        record = merge_service.merge_entities(db, payload.primary_id, payload.secondary_id, domain=payload.domain)
    except EntityNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MergeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ApiResponse(data=record)


@router.post("/reject", response_model=ApiResponse[dict[str, str]])
def reject(payload: MergeRequest, db: Session = Depends(get_db)) -> ApiResponse[dict[str, str]]:
    key = merge_service.reject_merge(db, payload.primary_id, payload.secondary_id, domain=payload.domain)
    return ApiResponse(data={"pair_key": key, "decision": "rejected"})


@router.post("/undo-last", response_model=ApiResponse[UndoMergeResult])
def undo_last(
    domain: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[UndoMergeResult]:
    try:
        result = merge_service.undo_last_merge(db, domain=domain)
    except MergeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.post("/redo", response_model=ApiResponse[MergeRecordRead])
def redo(
    domain: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[MergeRecordRead]:
    """Reapply the most recently undone merge."""

    try:
        record = merge_service.redo_last_merge(db, domain=domain)
    except MergeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ApiResponse(data=record)


@router.post("/{merge_id}/undo", response_model=ApiResponse[UndoMergeResult])
def undo(
    merge_id: str = Path(..., min_length=1),
    domain: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[UndoMergeResult]:
    try:
        result = merge_service.undo_merge(db, merge_id, domain=domain)
    except MergeRecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.get("/history", response_model=ApiResponse[list[MergeRecordRead]])
def history(
    domain: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    include_undone: bool = Query(default=True),
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ApiResponse[list[MergeRecordRead]]:
    records = merge_service.list_merge_records(
        db,
        domain=domain,
        entity_id=entity_id,
        include_undone=include_undone,
        limit=limit,
    )
    return ApiResponse(data=records)


@router.get("/stats", response_model=ApiResponse[dict[str, Any]])
def stats(
    domain: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    return ApiResponse(data=merge_service.merge_statistics(db, domain=domain))
