"""Duplicate detection, merge classification, merge execution and undo."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from commgraph.entity_resolution.decisions import InMemoryPairDecisionStore, PairDecisionStore, pair_key
from commgraph.entity_resolution.errors import EntityNotFound, MergeError
from commgraph.entity_resolution.merge_history import MergeHistory
from commgraph.entity_resolution.similarity import compute_similarity, normalize_entity_text
from commgraph.entity_resolution.types import (
    AutoMergeOutcome,
    CandidateType,
    EntityRelationship,
    EntitySimilarity,
    GraphEntity,
    MergeCandidate,
    MergePreview,
    MergeRecord,
    MergeType,
)

logger = logging.getLogger(__name__)

MERGER_VERSION = "merge-engine-v1"
DEFAULT_SUGGEST_THRESHOLD = 0.6
DEFAULT_AUTO_THRESHOLD = 0.8
_HIGH_SIMILARITY = 0.95
_MAX_CONFIDENCE_GAP = 0.1


class MergeEngine:
    """Find likely duplicates and fold secondaries into primaries.

    Pairs that were merged or rejected are remembered in the decision store
    and never proposed again. Secondaries of merges that are still in effect
    are treated as consumed and skipped on later scans.
    """

    def __init__(
        self,
        *,
        decisions: PairDecisionStore | None = None,
        history: MergeHistory | None = None,
        suggest_threshold: float = DEFAULT_SUGGEST_THRESHOLD,
        auto_threshold: float = DEFAULT_AUTO_THRESHOLD,
        compare_across_categories: bool = False,
        domain: str | None = None,
    ) -> None:
        self._decisions = decisions if decisions is not None else InMemoryPairDecisionStore()
        self._history = history if history is not None else MergeHistory()
        self._suggest_threshold = suggest_threshold
        self._auto_threshold = auto_threshold
        self._compare_across_categories = compare_across_categories
        self._domain = domain

    @property
    def history(self) -> MergeHistory:
        return self._history

    @property
    def decisions(self) -> PairDecisionStore:
        return self._decisions

    def find_merge_candidates(self, entities: Sequence[GraphEntity]) -> list[MergeCandidate]:
        """Score undecided pairs and keep those above the suggest threshold."""

        usable = self._usable_entities(entities)
        candidates: list[MergeCandidate] = []
        for index, left in enumerate(usable):
            for right in usable[index + 1 :]:
                if not self._compare_across_categories and left.category != right.category:
                    continue
                if self._decisions.has(pair_key(left.id, right.id)):
                    continue
                similarity = compute_similarity(left, right)
                if similarity.overall <= self._suggest_threshold:
                    continue
                primary, secondary = self._order_pair(left, right)
                candidates.append(
                    MergeCandidate(
                        primary=primary,
                        secondary=secondary,
                        similarity=similarity,
                        merge_type=self.evaluate_merge_type(primary, secondary, similarity),
                        reasons=self.merge_reasons(primary, secondary, similarity),
                    )
                )
        candidates.sort(
            key=lambda c: (-c.similarity.merge_confidence, -c.similarity.overall, c.primary.id, c.secondary.id)
        )
        return candidates

    def evaluate_merge_type(
        self,
        left: GraphEntity,
        right: GraphEntity,
        similarity: EntitySimilarity | None = None,
    ) -> CandidateType:
        similarity = similarity or compute_similarity(left, right)
        same_category = left.category == right.category
        if (
            normalize_entity_text(left.name) == normalize_entity_text(right.name)
            and same_category
            and left.designation == right.designation
        ):
            return "auto"
        if (
            similarity.overall > _HIGH_SIMILARITY
            and same_category
            and abs(left.confidence - right.confidence) < _MAX_CONFIDENCE_GAP
        ):
            return "auto"
        if similarity.merge_confidence >= self._auto_threshold:
            return "auto"
        return "suggest"

    @staticmethod
    def merge_reasons(
        left: GraphEntity,
        right: GraphEntity,
        similarity: EntitySimilarity | None = None,
    ) -> list[str]:
        similarity = similarity or compute_similarity(left, right)
        reasons: list[str] = []
        if normalize_entity_text(left.name) == normalize_entity_text(right.name):
            reasons.append("Identical names (case insensitive)")
        elif similarity.name > 0.8:
            reasons.append("Very similar names")
        elif similarity.name > 0.6:
            reasons.append("Similar names")
        if left.category == right.category:
            reasons.append("Same category")
        if left.designation == right.designation:
            reasons.append("Same designation type")
        if left.conversation_id is not None and left.conversation_id == right.conversation_id:
            reasons.append("Same document")
        shared = {r.key() for r in left.relationships} & {r.key() for r in right.relationships}
        if shared:
            reasons.append(f"{len(shared)} shared relationships")
        return reasons

    def merge_with(
        self,
        primary: GraphEntity,
        secondary: GraphEntity,
        *,
        merge_type: MergeType = "manual",
        similarity: EntitySimilarity | None = None,
        reasons: list[str] | None = None,
    ) -> MergeRecord:
        """Fold ``secondary`` into ``primary`` in place and log the merge."""

        if primary.id == secondary.id:
            raise MergeError(f"Cannot merge entity {primary.id} with itself")
        consumed = self._history.consumed_entity_ids()
        for entity_id in (primary.id, secondary.id):
            if entity_id in consumed:
                raise MergeError(f"Entity {entity_id} was already merged")
        similarity = similarity or compute_similarity(primary, secondary)
        if reasons is None:
            reasons = self.merge_reasons(primary, secondary, similarity)
        primary_before = primary.snapshot()
        self._apply_merge(primary, secondary)
        record = self._history.record(
            merge_type=merge_type,
            primary_before=primary_before,
            secondary=secondary,
            result=primary,
            similarity=similarity.to_dict(),
            reasons=reasons,
            domain=self._domain,
        )
        self._decisions.add(pair_key(primary.id, secondary.id), "merged")
        self._decisions.persist()
        logger.info(
            "merge.applied merge_id=%s type=%s primary_id=%s secondary_id=%s overall=%.3f",
            record.id,
            merge_type,
            primary.id,
            secondary.id,
            similarity.overall,
        )
        return record

    def merge_ids(
        self,
        entities: Iterable[GraphEntity],
        primary_id: str,
        secondary_id: str,
        *,
        merge_type: MergeType = "manual",
    ) -> MergeRecord:
        by_id = {entity.id: entity for entity in entities}
        for entity_id in (primary_id, secondary_id):
            if entity_id not in by_id:
                raise EntityNotFound(entity_id)
        return self.merge_with(by_id[primary_id], by_id[secondary_id], merge_type=merge_type)

    def preview_merge(self, primary: GraphEntity, secondary: GraphEntity) -> MergePreview:
        """Compute the effect of a merge without touching the inputs or the log."""

        result = primary.copy()
        self._apply_merge(result, secondary.copy())
        return MergePreview(
            result=result,
            confidence_change=result.confidence - primary.confidence,
            relationships_added=len(result.relationships) - len(primary.relationships),
            tags_added=len(result.tags) - len(primary.tags),
        )

    def perform_auto_merges(self, entities: Sequence[GraphEntity]) -> AutoMergeOutcome:
        """Apply every auto-classified candidate; return the rest as suggestions.

        Running this twice on the same input performs no merges the second
        time, since merged pairs are recorded and secondaries are consumed.
        """

        consumed_before = self._history.consumed_entity_ids()
        removed: set[str] = set()
        merges: list[MergeRecord] = []
        suggestions: list[MergeCandidate] = []
        for candidate in self.find_merge_candidates(entities):
            if candidate.primary.id in removed or candidate.secondary.id in removed:
                continue
            if not candidate.auto_mergeable:
                suggestions.append(candidate)
                continue
            merges.append(
                self.merge_with(
                    candidate.primary,
                    candidate.secondary,
                    merge_type="auto",
                    similarity=candidate.similarity,
                    reasons=candidate.reasons,
                )
            )
            removed.add(candidate.secondary.id)

        remaining = [
            entity
            for entity in entities
            if getattr(entity, "id", None) not in removed and getattr(entity, "id", None) not in consumed_before
        ]
        suggestions = [
            s for s in suggestions if s.primary.id not in removed and s.secondary.id not in removed
        ]
        logger.info(
            "merge.auto_pass entities=%d merged=%d suggestions=%d remaining=%d",
            len(entities),
            len(merges),
            len(suggestions),
            len(remaining),
        )
        return AutoMergeOutcome(entities=remaining, merges=merges, suggestions=suggestions)

    def reject(self, left: GraphEntity | str, right: GraphEntity | str) -> str:
        """Never propose this pair again."""

        key = pair_key(_entity_id(left), _entity_id(right))
        self._decisions.add(key, "rejected")
        self._decisions.persist()
        logger.info("merge.rejected pair=%s", key)
        return key

    def postpone(self, left: GraphEntity | str, right: GraphEntity | str) -> str:
        """Leave the pair undecided so the next scan proposes it again."""

        key = pair_key(_entity_id(left), _entity_id(right))
        logger.debug("merge.postponed pair=%s", key)
        return key

    def undo_merge(self, merge_id: str) -> MergeRecord:
        """Flag a merge undone and release its secondary.

        The pair keeps its ``merged`` decision, so later scans do not propose
        or auto-merge it again; ``redo_last`` reapplies it. Undo is
        best-effort: the primary is not rolled back automatically.
        Callers restore entities from the record snapshots with
        ``restore_from_record``; a warning is logged when later merges
        touched the same primary.
        """

        record = self._history.get(merge_id)
        if record.undone:
            logger.info("merge.undo_skipped merge_id=%s reason=already_undone", merge_id)
            return record
        later = self._history.later_merges_into(record)
        if later:
            logger.warning(
                "merge.undo_not_lossless merge_id=%s primary_id=%s later_merges=%s",
                merge_id,
                record.primary_id,
                ",".join(r.id for r in later),
            )
        self._history.mark_undone(merge_id)
        logger.info(
            "merge.undone merge_id=%s primary_id=%s secondary_id=%s",
            merge_id,
            record.primary_id,
            record.secondary_id,
        )
        return record

    def undo_last(self) -> MergeRecord:
        record = self._history.last_active()
        if record is None:
            raise MergeError("No merges to undo")
        return self.undo_merge(record.id)

    def redo_last(self) -> MergeRecord:
        """Reapply the most recently undone merge unless a newer merge superseded it.

        The caller rebuilds the merged entity from ``record.result_entity``.
        """

        redoable = self._history.redoable()
        if not redoable:
            raise MergeError("No undone merges to redo")
        record = redoable[0]
        consumed = self._history.consumed_entity_ids()
        for entity_id in (record.primary_id, record.secondary_id):
            if entity_id in consumed:
                raise MergeError(f"Entity {entity_id} was already merged")
        self._history.mark_redone(record.id)
        self._decisions.add(pair_key(record.primary_id, record.secondary_id), "merged")
        self._decisions.persist()
        logger.info(
            "merge.redone merge_id=%s primary_id=%s secondary_id=%s",
            record.id,
            record.primary_id,
            record.secondary_id,
        )
        return record

    @staticmethod
    def restore_from_record(record: MergeRecord) -> tuple[GraphEntity, GraphEntity]:
        """Pre-merge primary and secondary rebuilt from the record snapshots."""

        return GraphEntity.from_snapshot(record.primary_entity), GraphEntity.from_snapshot(record.secondary_entity)

    def _usable_entities(self, entities: Sequence[GraphEntity]) -> list[GraphEntity]:
        consumed = self._history.consumed_entity_ids()
        usable: list[GraphEntity] = []
        seen: set[str] = set()
        for entity in entities:
            problem = _malformed_reason(entity)
            if problem is not None:
                logger.warning(
                    "merge.entity_skipped entity_id=%s reason=%s",
                    getattr(entity, "id", None),
                    problem,
                )
                continue
            if entity.id in consumed or entity.id in seen:
                continue
            seen.add(entity.id)
            usable.append(entity)
        return usable

    @staticmethod
    def _order_pair(left: GraphEntity, right: GraphEntity) -> tuple[GraphEntity, GraphEntity]:
        """Higher-confidence entity survives; ties go to the smaller id."""

        if right.confidence > left.confidence:
            return right, left
        if left.confidence > right.confidence:
            return left, right
        return (left, right) if left.id <= right.id else (right, left)

    @staticmethod
    def _apply_merge(primary: GraphEntity, secondary: GraphEntity) -> None:
        primary.confidence = max(primary.confidence, secondary.confidence)

        existing = {relationship.key() for relationship in primary.relationships}
        for relationship in secondary.relationships:
            if relationship.target_id == primary.id or relationship.key() in existing:
                continue
            existing.add(relationship.key())
            primary.relationships.append(
                EntityRelationship(
                    type=relationship.type,
                    target_id=relationship.target_id,
                    confidence=relationship.confidence,
                    provenance=relationship.provenance,
                    established_on=relationship.established_on,
                    metadata=dict(relationship.metadata),
                )
            )

        for tag in secondary.tags:
            if tag not in primary.tags:
                primary.tags.append(tag)

        for merged_id in [secondary.id, *secondary.merged_from]:
            if merged_id not in primary.merged_from:
                primary.merged_from.append(merged_id)

        if normalize_entity_text(secondary.name) != normalize_entity_text(primary.name):
            aliases = primary.attributes.get("aliases")
            if not isinstance(aliases, list):
                aliases = primary.attributes["aliases"] = []
            if secondary.name not in aliases:
                aliases.append(secondary.name)
        for key, value in secondary.attributes.items():
            if key not in primary.attributes:
                primary.attributes[key] = value


def _entity_id(value: GraphEntity | str) -> str:
    return value.id if isinstance(value, GraphEntity) else str(value)


def _malformed_reason(entity: Any) -> str | None:
    if not isinstance(entity, GraphEntity):
        return "not_an_entity"
    if not entity.id:
        return "missing_id"
    if not entity.name or not entity.name.strip():
        return "missing_name"
    if not entity.category:
        return "missing_category"
    return None
