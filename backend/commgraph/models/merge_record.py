"""Merge log ORM model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from commgraph.models.base import Base, IdMixin


class MergeRecordRow(Base, IdMixin):
    """Append-only merge records; undo only flips ``undone``."""

    __tablename__ = "merge_records"

    merge_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    merge_type: Mapped[str] = mapped_column(String(16), nullable=False)
    primary_entity_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    secondary_entity_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    primary_snapshot_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    secondary_snapshot_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    result_snapshot_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    similarity_json: Mapped[dict[str, float]] = mapped_column(JSON, default=dict, nullable=False)
    reasons_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    merger_version: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    undone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    undone_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
