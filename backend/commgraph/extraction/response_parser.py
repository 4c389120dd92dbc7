"""Best-effort decoding and normalization of raw LLM extraction output."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from commgraph.extraction.relationship_validator import RelationshipValidator
from commgraph.extraction.rule_based_extractor import RuleBasedExtractor
from commgraph.extraction.types import ExtractedRelationship, ExtractionMetadata, ExtractionResult, Provenance
from commgraph.schema.entity_types import (
    TYPE_BY_CATEGORY,
    category_for_type,
    entity_display_name,
    get_entity_schema,
    normalize_entity_type,
)
from commgraph.schema.relationship_registry import normalize_relationship_label
from commgraph.schema.validator import validate_entity

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_AMOUNT_RE = re.compile(r"^\$?\s*(?P<number>\d[\d,]*(?:\.\d+)?)\s*(?P<suffix>[kKmM])?$")
_RAW_SNIPPET_CHARS = 200


@dataclass(slots=True)
class DecodedPayload:
    """Decoded JSON object or the reason decoding failed."""

    payload: dict[str, Any] | None
    error: str | None = None


def decode_llm_json(content: str | None) -> DecodedPayload:
    """Strip fences and surrounding prose, then decode the outermost JSON object."""

    if not content or not content.strip():
        return DecodedPayload(payload=None, error="empty response")
    cleaned = _FENCE_RE.sub("", content).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return DecodedPayload(payload=None, error="no JSON object found in response")
    try:
        decoded = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as exc:
        return DecodedPayload(payload=None, error=f"invalid JSON: {exc.msg}")
    if not isinstance(decoded, dict):
        return DecodedPayload(payload=None, error="decoded JSON is not an object")
    return DecodedPayload(payload=decoded)


class _RawRelationship(BaseModel):
    type: str | None = Field(default=None, validation_alias=AliasChoices("type", "relationship_type"))
    source: str | None = None
    target: str | None = None
    confidence: Any = None
    source_type: str | None = None
    target_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class _RawExtractionPayload(BaseModel):
    entities: dict[str, Any] = Field(default_factory=dict)
    relationships: list[Any] = Field(default_factory=list)
    summary: str = ""

    @field_validator("entities", mode="before")
    @classmethod
    def _group_entity_list(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, list):
            grouped: dict[str, list[Any]] = {}
            for item in value:
                raw_type = item.get("entity_type") or item.get("category") if isinstance(item, dict) else None
                grouped.setdefault(str(raw_type or "unknown"), []).append(item)
            return grouped
        return value

    @field_validator("relationships", mode="before")
    @classmethod
    def _default_relationships(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @field_validator("summary", mode="before")
    @classmethod
    def _default_summary(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""


class ResponseParser:
    """Turn raw model text into a normalized extraction result."""

    def __init__(
        self,
        *,
        default_confidence: float = 0.7,
        min_confidence: float = 0.5,
        relationship_validator: RelationshipValidator | None = None,
        provenance: Provenance | str = Provenance.LLM_EXTRACTION,
    ) -> None:
        self._default_confidence = default_confidence
        self._min_confidence = min_confidence
        self._relationship_validator = relationship_validator
        self._provenance = provenance
        self._fallback_extractor = RuleBasedExtractor()

    def parse(self, content: str | None, *, source_text: str | None = None) -> ExtractionResult:
        """Parse a completion; never raises on malformed content."""

        decoded = decode_llm_json(content)
        if decoded.payload is None:
            return self._fallback(content, source_text, decoded.error or "unparseable response")
        try:
            validated = _RawExtractionPayload.model_validate(decoded.payload)
        except ValidationError as exc:
            return self._fallback(content, source_text, f"payload failed validation: {exc.error_count()} errors")

        warnings: list[str] = []
        dropped_entities = 0
        entities: dict[str, list[dict[str, Any]]] = {}
        for raw_category, raw_items in validated.entities.items():
            entity_type = self._entity_type_for_category(raw_category)
            if entity_type is None:
                warnings.append(f"Unknown entity category: {raw_category}")
                logger.warning("extraction.entity_category_dropped category=%s", raw_category)
                dropped_entities += len(raw_items) if isinstance(raw_items, list) else 1
                continue
            if not isinstance(raw_items, list):
                raw_items = [raw_items]
            category = category_for_type(entity_type)
            bucket = entities.setdefault(category, [])
            for index, raw_item in enumerate(raw_items):
                item = self._normalize_entity(raw_item, entity_type)
                if item is None:
                    warnings.append(f"{category}[{index}]: entity is not an object")
                    dropped_entities += 1
                    continue
                if item["confidence"] < self._min_confidence:
                    dropped_entities += 1
                    continue
                validation = validate_entity(item, entity_type)
                if not validation.valid:
                    for error in validation.errors:
                        warnings.append(f"{category}[{index}]: {error}")
                    logger.warning(
                        "extraction.entity_dropped category=%s index=%d errors=%s",
                        category,
                        index,
                        "; ".join(validation.errors),
                    )
                    dropped_entities += 1
                    continue
                bucket.append(item)

        relationships, dropped_relationships = self._normalize_relationships(validated.relationships, entities)
        if self._relationship_validator is not None:
            admission = self._relationship_validator.admit(relationships, provenance=self._provenance)
            relationships = admission.admitted
            dropped_relationships += admission.dropped
            warnings.extend(admission.warnings)

        confidences = [item["confidence"] for items in entities.values() for item in items]
        confidences.extend(relationship.confidence for relationship in relationships)
        overall = sum(confidences) / len(confidences) if confidences else 0.0

        return ExtractionResult(
            entities=entities,
            relationships=relationships,
            summary=validated.summary.strip(),
            metadata=ExtractionMetadata(
                confidence=overall,
                validation_warnings=warnings,
                dropped_entities=dropped_entities,
                dropped_relationships=dropped_relationships,
            ),
        )

    def _fallback(self, content: str | None, source_text: str | None, reason: str) -> ExtractionResult:
        snippet = (content or "")[:_RAW_SNIPPET_CHARS].replace("\n", " ")
        logger.warning("extraction.parse_fallback reason=%s raw=%r", reason, snippet)
        result = self._fallback_extractor.build_result(
            source_text if source_text is not None else (content or ""),
            summary=f"Fallback extraction: {reason}",
            is_basic=False,
        )
        result.metadata.validation_warnings.append(reason)
        return result

    @staticmethod
    def _entity_type_for_category(raw_category: str) -> str | None:
        key = raw_category.strip().lower()
        if key in TYPE_BY_CATEGORY:
            return TYPE_BY_CATEGORY[key]
        return normalize_entity_type(raw_category)

    def _normalize_entity(self, raw_item: Any, entity_type: str) -> dict[str, Any] | None:
        if not isinstance(raw_item, dict):
            return None
        item: dict[str, Any] = {}
        for key, value in raw_item.items():
            item[str(key)] = self._clean_text(value) if isinstance(value, str) else value
        item["confidence"] = self._coerce_confidence(raw_item.get("confidence"))
        if entity_type == "cost" and isinstance(item.get("amount"), str):
            item["amount"] = self._coerce_amount(item["amount"])
        schema = get_entity_schema(entity_type)
        for field_name, allowed in (schema.enums.items() if schema is not None else ()):
            value = item.get(field_name)
            if isinstance(value, str):
                candidate = value.strip().lower().replace(" ", "_").replace("-", "_")
                if candidate in allowed:
                    item[field_name] = candidate
        if isinstance(item.get("designation"), str):
            item["designation"] = item["designation"].strip().lower()
        return item

    def _normalize_relationships(
        self,
        raw_relationships: list[Any],
        entities: dict[str, list[dict[str, Any]]],
    ) -> tuple[list[ExtractedRelationship], int]:
        types_by_name: dict[str, str] = {}
        for category, items in entities.items():
            entity_type = TYPE_BY_CATEGORY.get(category, category)
            for item in items:
                name = entity_display_name(item, entity_type).lower()
                if name and name not in types_by_name:
                    types_by_name[name] = entity_type

        relationships: list[ExtractedRelationship] = []
        dropped = 0
        for raw in raw_relationships:
            if not isinstance(raw, dict):
                dropped += 1
                continue
            try:
                parsed = _RawRelationship.model_validate(raw)
            except ValidationError:
                dropped += 1
                continue
            type_ = normalize_relationship_label(parsed.type)
            source = self._clean_text(parsed.source)
            target = self._clean_text(parsed.target)
            if not (type_ and source and target):
                dropped += 1
                continue
            relationships.append(
                ExtractedRelationship(
                    type=type_,
                    source=source,
                    target=target,
                    confidence=self._coerce_confidence(parsed.confidence, default=0.0),
                    source_type=self._infer_type(source, parsed.source_type, types_by_name),
                    target_type=self._infer_type(target, parsed.target_type, types_by_name),
                    metadata=parsed.metadata,
                )
            )
        return relationships, dropped

    @staticmethod
    def _infer_type(name: str, declared: str | None, types_by_name: dict[str, str]) -> str:
        """Declared endpoint type wins; only a missing one is inferred from entity names."""

        declared = (declared or "").strip()
        if declared:
            return normalize_entity_type(declared) or declared
        return types_by_name.get(name.lower(), "unknown")

    def _coerce_confidence(self, value: Any, *, default: float | None = None) -> float:
        fallback = self._default_confidence if default is None else default
        if isinstance(value, bool) or value is None:
            return fallback
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            return fallback
        if parsed != parsed:
            return fallback
        return max(0.0, min(1.0, parsed))

    @staticmethod
    def _coerce_amount(value: str) -> float | str:
        match = _AMOUNT_RE.match(value.strip())
        if match is None:
            return value
        amount = float(match.group("number").replace(",", ""))
        suffix = (match.group("suffix") or "").lower()
        if suffix == "k":
            amount *= 1_000
        elif suffix == "m":
            amount *= 1_000_000
        return amount

    @staticmethod
    def _clean_text(value: str | None) -> str:
        if not value:
            return ""
        return re.sub(r"\s+", " ", value).strip()
