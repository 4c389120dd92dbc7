"""Merge engine wiring over the stored extraction records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from commgraph.config import get_settings
from commgraph.entity_resolution.decisions import SqlPairDecisionStore
from commgraph.entity_resolution.errors import MergeError
from commgraph.entity_resolution.merge_history import MergeHistory
from commgraph.entity_resolution.merger import MERGER_VERSION, MergeEngine
from commgraph.entity_resolution.types import GraphEntity, MergeRecord
from commgraph.models.merge_record import MergeRecordRow
from commgraph.schemas.merges import (
    AutoMergeRunResult,
    MergeCandidateRead,
    MergeRecordRead,
    UndoMergeResult,
)
from commgraph.services.entity_store import flatten_record, list_all_entities

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeWorkspace:
    """Engine plus the entity set it operates on for one domain."""

    engine: MergeEngine
    entities: list[GraphEntity]
    domain: str


def _resolve_domain(domain: str | None) -> str:
    return domain or get_settings().default_domain


def load_merge_history(db: Session, domain: str) -> MergeHistory:
    rows = db.scalars(
        select(MergeRecordRow)
        .where(MergeRecordRow.domain == domain)
        .order_by(MergeRecordRow.timestamp.asc(), MergeRecordRow.id.asc())
    ).all()
    return MergeHistory(_row_to_record(row) for row in rows)


def build_merge_engine(db: Session, domain: str | None = None) -> MergeEngine:
    """Merge engine backed by the stored decisions and merge log of ``domain``."""

    settings = get_settings()
    domain = _resolve_domain(domain)
    return MergeEngine(
        decisions=SqlPairDecisionStore(db, domain),
        history=load_merge_history(db, domain),
        suggest_threshold=settings.merge_suggest_threshold,
        auto_threshold=settings.merge_auto_threshold,
        compare_across_categories=settings.merge_compare_across_categories,
        domain=domain,
    )


def load_workspace(db: Session, domain: str | None = None) -> MergeWorkspace:
    """Flatten stored records and replay active merges onto their primaries."""

    domain = _resolve_domain(domain)
    engine = build_merge_engine(db, domain)
    entities: list[GraphEntity] = []
    for record in reversed(list_all_entities(db, domain=domain)):
        entities.extend(flatten_record(record))

    # Active merges replace their primary with the stored result snapshot.
    results: dict[str, GraphEntity] = {}
    for merge in engine.history.active():
        results[merge.primary_id] = GraphEntity.from_snapshot(merge.result_entity)
    consumed = engine.history.consumed_entity_ids()
    active = [results.get(entity.id, entity) for entity in entities if entity.id not in consumed]
    return MergeWorkspace(engine=engine, entities=active, domain=domain)


def list_merge_candidates(
    db: Session,
    *,
    domain: str | None = None,
    limit: int | None = None,
) -> list[MergeCandidateRead]:
    workspace = load_workspace(db, domain)
    candidates = workspace.engine.find_merge_candidates(workspace.entities)
    limit = limit if limit is not None else get_settings().merge_candidate_limit
    return [MergeCandidateRead.from_candidate(candidate) for candidate in candidates[:limit]]


def run_auto_merges(db: Session, *, domain: str | None = None) -> AutoMergeRunResult:
    """Apply every auto-classified merge and persist the new log entries."""

    workspace = load_workspace(db, domain)
    try:
        outcome = workspace.engine.perform_auto_merges(workspace.entities)
        rows = [_add_record_row(db, record) for record in outcome.merges]
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("merge.auto_run_failed domain=%s", workspace.domain)
        raise
    return AutoMergeRunResult(
        merges=[MergeRecordRead.model_validate(row) for row in rows],
        suggestions=[MergeCandidateRead.from_candidate(candidate) for candidate in outcome.suggestions],
        remaining_entities=len(outcome.entities),
    )


def merge_entities(
    db: Session,
    primary_id: str,
    secondary_id: str,
    *,
    domain: str | None = None,
) -> MergeRecordRead:
    workspace = load_workspace(db, domain)
    try:
        record = workspace.engine.merge_ids(workspace.entities, primary_id, secondary_id, merge_type="manual")
        row = _add_record_row(db, record)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return MergeRecordRead.model_validate(row)


def reject_merge(db: Session, left_id: str, right_id: str, *, domain: str | None = None) -> str:
    engine = build_merge_engine(db, domain)
    key = engine.reject(left_id, right_id)
    db.commit()
    return key


def undo_merge(db: Session, merge_id: str, *, domain: str | None = None) -> UndoMergeResult:
    """Flag a stored merge undone; the pair stays decided so scans skip it."""

    domain = _resolve_domain(domain)
    engine = build_merge_engine(db, domain)
    record = engine.history.get(merge_id)
    lossless = not engine.history.later_merges_into(record)
    try:
        engine.undo_merge(merge_id)
        row = db.scalars(select(MergeRecordRow).where(MergeRecordRow.merge_id == merge_id)).one()
        row.undone = record.undone
        row.undone_at = record.undone_at
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("merge.undo_failed merge_id=%s", merge_id)
        raise
    primary, secondary = engine.restore_from_record(record)
    return UndoMergeResult(
        record=MergeRecordRead.model_validate(row),
        lossless=lossless,
        restored_primary=primary.snapshot(),
        restored_secondary=secondary.snapshot(),
    )


def undo_last_merge(db: Session, *, domain: str | None = None) -> UndoMergeResult:
    domain = _resolve_domain(domain)
    record = load_merge_history(db, domain).last_active()
    if record is None:
        raise MergeError("No merges to undo")
    return undo_merge(db, record.id, domain=domain)


def redo_last_merge(db: Session, *, domain: str | None = None) -> MergeRecordRead:
    """Reapply the most recently undone merge of ``domain``."""

    engine = build_merge_engine(db, domain)
    record = engine.redo_last()
    try:
        row = db.scalars(select(MergeRecordRow).where(MergeRecordRow.merge_id == record.id)).one()
        row.undone = False
        row.undone_at = None
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("merge.redo_failed merge_id=%s", record.id)
        raise
    return MergeRecordRead.model_validate(row)


def list_merge_records(
    db: Session,
    *,
    domain: str | None = None,
    entity_id: str | None = None,
    include_undone: bool = True,
    limit: int | None = None,
) -> list[MergeRecordRead]:
    history = load_merge_history(db, _resolve_domain(domain))
    records = history.query(entity_id=entity_id, include_undone=include_undone, limit=limit)
    ids = [record.id for record in records]
    if not ids:
        return []
    rows = {row.merge_id: row for row in db.scalars(select(MergeRecordRow).where(MergeRecordRow.merge_id.in_(ids)))}
    return [MergeRecordRead.model_validate(rows[merge_id]) for merge_id in ids]


def merge_statistics(db: Session, *, domain: str | None = None) -> dict[str, object]:
    return load_merge_history(db, _resolve_domain(domain)).statistics()


def _add_record_row(db: Session, record: MergeRecord) -> MergeRecordRow:
    row = MergeRecordRow(
        merge_id=record.id,
        domain=record.domain or get_settings().default_domain,
        merge_type=record.type,
        primary_entity_id=record.primary_id,
        secondary_entity_id=record.secondary_id,
        primary_snapshot_json=record.primary_entity,
        secondary_snapshot_json=record.secondary_entity,
        result_snapshot_json=record.result_entity,
        similarity_json=record.similarity,
        reasons_json=list(record.reasons),
        merger_version=MERGER_VERSION,
        timestamp=record.timestamp,
        undone=record.undone,
        undone_at=record.undone_at,
    )
    db.add(row)
    db.flush()
    return row


def _row_to_record(row: MergeRecordRow) -> MergeRecord:
    return MergeRecord(
        id=row.merge_id,
        timestamp=_as_utc(row.timestamp),
        type=row.merge_type,
        primary_entity=dict(row.primary_snapshot_json),
        secondary_entity=dict(row.secondary_snapshot_json),
        similarity=dict(row.similarity_json),
        result_entity=dict(row.result_snapshot_json),
        reasons=list(row.reasons_json),
        domain=row.domain,
        undone=row.undone,
        undone_at=_as_utc(row.undone_at) if row.undone_at is not None else None,
    )


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
