"""Entity resolution package."""

from commgraph.entity_resolution.decisions import (
    InMemoryPairDecisionStore,
    PairDecisionStore,
    SqlPairDecisionStore,
    pair_key,
)
from commgraph.entity_resolution.errors import EntityNotFound, MergeError, MergeRecordNotFound
from commgraph.entity_resolution.merge_history import MergeHistory
from commgraph.entity_resolution.merger import MERGER_VERSION, MergeEngine
from commgraph.entity_resolution.similarity import compute_similarity, levenshtein_similarity
from commgraph.entity_resolution.types import (
    AutoMergeOutcome,
    EntityRelationship,
    EntitySimilarity,
    GraphEntity,
    MergeCandidate,
    MergeRecord,
)

__all__ = [
    "MERGER_VERSION",
    "AutoMergeOutcome",
    "EntityNotFound",
    "EntityRelationship",
    "EntitySimilarity",
    "GraphEntity",
    "InMemoryPairDecisionStore",
    "MergeCandidate",
    "MergeEngine",
    "MergeError",
    "MergeHistory",
    "MergeRecord",
    "MergeRecordNotFound",
    "PairDecisionStore",
    "SqlPairDecisionStore",
    "compute_similarity",
    "levenshtein_similarity",
    "pair_key",
]
