"""ORM models package exports."""

from commgraph.models.entity_record import EntityRecord
from commgraph.models.merge_record import MergeRecordRow
from commgraph.models.pair_decision import PairDecision

__all__ = [
    "EntityRecord",
    "MergeRecordRow",
    "PairDecision",
]
