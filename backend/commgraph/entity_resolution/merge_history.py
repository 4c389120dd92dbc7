"""Append-only merge log with undo flags and statistics."""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Iterable

from commgraph.entity_resolution.errors import MergeRecordNotFound
from commgraph.entity_resolution.types import GraphEntity, MergeRecord, MergeType


def new_merge_id(now: datetime | None = None) -> str:
    stamp = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    return f"merge_{stamp}_{uuid.uuid4().hex[:9]}"


class MergeHistory:
    """Ordered merge records; records are never removed, only flagged undone."""

    def __init__(self, records: Iterable[MergeRecord] = ()) -> None:
        self._records: list[MergeRecord] = list(records)
        self._by_id: dict[str, MergeRecord] = {record.id: record for record in self._records}

    def record(
        self,
        *,
        merge_type: MergeType,
        primary_before: dict[str, Any],
        secondary: GraphEntity,
        result: GraphEntity,
        similarity: dict[str, float],
        reasons: list[str] | None = None,
        domain: str | None = None,
    ) -> MergeRecord:
        now = datetime.now(timezone.utc)
        record = MergeRecord(
            id=new_merge_id(now),
            timestamp=now,
            type=merge_type,
            primary_entity=primary_before,
            secondary_entity=secondary.snapshot(),
            similarity=dict(similarity),
            result_entity=result.snapshot(),
            reasons=list(reasons or []),
            domain=domain,
        )
        self._records.append(record)
        self._by_id[record.id] = record
        return record

    def get(self, merge_id: str) -> MergeRecord:
        record = self._by_id.get(merge_id)
        if record is None:
            raise MergeRecordNotFound(merge_id)
        return record

    def mark_undone(self, merge_id: str) -> MergeRecord:
        record = self.get(merge_id)
        if not record.undone:
            record.undone = True
            record.undone_at = datetime.now(timezone.utc)
        return record

    def query(
        self,
        *,
        entity_id: str | None = None,
        merge_type: MergeType | None = None,
        include_undone: bool = True,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[MergeRecord]:
        records = [
            record
            for record in self._records
            if (include_undone or not record.undone)
            and (merge_type is None or record.type == merge_type)
            and (entity_id is None or entity_id in (record.primary_id, record.secondary_id))
        ]
        if newest_first:
            records.reverse()
        return records[:limit] if limit is not None else records

    def active(self) -> list[MergeRecord]:
        return [record for record in self._records if not record.undone]

    def last_active(self) -> MergeRecord | None:
        active = self.active()
        return active[-1] if active else None

    def redoable(self) -> list[MergeRecord]:
        """Undone merges that no newer merge has superseded, most recently undone first."""

        if not self._records:
            return []
        newest = max(record.timestamp for record in self._records)
        undone = [
            record
            for record in self._records
            if record.undone and record.undone_at is not None and record.undone_at >= newest
        ]
        undone.sort(key=lambda record: (record.undone_at, self._records.index(record)), reverse=True)
        return undone

    def mark_redone(self, merge_id: str) -> MergeRecord:
        record = self.get(merge_id)
        record.undone = False
        record.undone_at = None
        return record

    def consumed_entity_ids(self) -> set[str]:
        """Secondaries absorbed by merges that are still in effect."""

        return {record.secondary_id for record in self._records if not record.undone}

    def later_merges_into(self, record: MergeRecord) -> list[MergeRecord]:
        """Active merges recorded after ``record`` that touched its primary."""

        index = self._records.index(record)
        return [
            later
            for later in self._records[index + 1 :]
            if not later.undone and record.primary_id in (later.primary_id, later.secondary_id)
        ]

    def merge_chain(self, entity_id: str) -> list[MergeRecord]:
        """Active merges that fed into ``entity_id``, oldest first, following absorbed secondaries."""

        chain: list[MergeRecord] = []
        frontier = [entity_id]
        seen: set[str] = set()
        while frontier:
            current = frontier.pop()
            if current in seen:
                continue
            seen.add(current)
            for record in self._records:
                if not record.undone and record.primary_id == current:
                    chain.append(record)
                    frontier.append(record.secondary_id)
        chain.sort(key=self._records.index)
        return chain

    def statistics(self) -> dict[str, Any]:
        total = len(self._records)
        by_type = Counter(record.type for record in self._records)
        undone = sum(1 for record in self._records if record.undone)
        similarities = [float(record.similarity.get("overall", 0.0)) for record in self._records]
        categories = Counter(str(record.primary_entity.get("category") or "unknown") for record in self._records)
        designations = Counter(
            str(record.primary_entity.get("designation") or "generic") for record in self._records
        )
        daily = Counter(record.timestamp.date().isoformat() for record in self._records)
        return {
            "total_merges": total,
            "auto_merges": by_type.get("auto", 0),
            "manual_merges": by_type.get("manual", 0),
            "batch_merges": by_type.get("batch", 0),
            "undone_merges": undone,
            "active_merges": total - undone,
            "average_similarity": sum(similarities) / total if total else 0.0,
            "category_breakdown": dict(categories),
            "designation_breakdown": dict(designations),
            "daily_activity": dict(sorted(daily.items())),
        }

    def __len__(self) -> int:
        return len(self._records)
