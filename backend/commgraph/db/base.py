"""SQLAlchemy metadata registry import for table creation."""

from commgraph.models import EntityRecord, MergeRecordRow, PairDecision
from commgraph.models.base import Base

__all__ = ["Base", "EntityRecord", "MergeRecordRow", "PairDecision"]
