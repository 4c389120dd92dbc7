"""Stored extraction result ORM model."""

from sqlalchemy import JSON, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from commgraph.models.base import Base, CreatedAtMixin, IdMixin


class EntityRecord(Base, IdMixin, CreatedAtMixin):
    """Entities and relationships extracted from one communication."""

    __tablename__ = "entity_records"

    conversation_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    entities_json: Mapped[dict[str, list[dict[str, object]]]] = mapped_column(JSON, default=dict, nullable=False)
    relationships_json: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list, nullable=False)
    summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    metadata_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    entity_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
