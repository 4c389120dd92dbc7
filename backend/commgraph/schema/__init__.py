"""Entity schemas and relationship vocabulary."""

from commgraph.schema.entity_types import (
    CATEGORY_BY_TYPE,
    ENTITY_SCHEMAS,
    ENTITY_TYPE_VALUES,
    TYPE_BY_CATEGORY,
    category_for_type,
    entity_display_name,
    normalize_entity_type,
)
from commgraph.schema.relationship_registry import (
    RELATIONSHIP_DEFINITIONS,
    RelationshipDefinition,
    RelationshipRegistry,
    normalize_relationship_label,
)
from commgraph.schema.validator import EntityValidation, validate_entity

__all__ = [
    "CATEGORY_BY_TYPE",
    "ENTITY_SCHEMAS",
    "ENTITY_TYPE_VALUES",
    "RELATIONSHIP_DEFINITIONS",
    "TYPE_BY_CATEGORY",
    "EntityValidation",
    "RelationshipDefinition",
    "RelationshipRegistry",
    "category_for_type",
    "entity_display_name",
    "normalize_entity_type",
    "normalize_relationship_label",
    "validate_entity",
]
