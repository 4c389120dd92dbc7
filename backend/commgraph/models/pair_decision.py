"""Decided merge pair ORM model."""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commgraph.models.base import Base, IdMixin


class PairDecision(Base, IdMixin):
    """Pair of entity ids that was merged or rejected within a domain."""

    __tablename__ = "pair_decisions"
    __table_args__ = (UniqueConstraint("domain", "pair_key", name="uq_pair_decisions_domain_pair_key"),)

    domain: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    pair_key: Mapped[str] = mapped_column(String(512), nullable=False)
    decision: Mapped[str] = mapped_column(String(16), nullable=False)
    decided_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
