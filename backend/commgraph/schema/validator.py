"""Schema validation for extracted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from commgraph.schema.entity_types import DESIGNATION_VALUES, get_entity_schema

_TYPE_LABELS: dict[str, str] = {
    "string": "a string",
    "number": "a number",
    "boolean": "a boolean",
    "array": "an array",
    "object": "an object",
}


@dataclass(slots=True)
class EntityValidation:
    """Validation verdict for one entity."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def validate_entity(entity: dict[str, Any], entity_type: str) -> EntityValidation:
    """Check required fields, property types and ranges, enumerated values, designation and confidence."""

    schema = get_entity_schema(entity_type)
    if schema is None:
        return EntityValidation(valid=False, errors=[f"Unknown entity type: {entity_type}"])

    errors: list[str] = []
    for field_name in schema.required:
        value = entity.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"Missing required field: {field_name}")

    for field_name, rule in schema.properties.items():
        value = entity.get(field_name)
        if value is None:
            continue
        if not _matches_type(value, rule.type):
            errors.append(f"Field {field_name} must be {_TYPE_LABELS.get(rule.type, rule.type)}")
            continue
        if rule.minimum is not None and value < rule.minimum:
            errors.append(f"Field {field_name} must be at least {rule.minimum}")
        if rule.maximum is not None and value > rule.maximum:
            errors.append(f"Field {field_name} must be at most {rule.maximum}")

    for field_name, allowed in schema.enums.items():
        value = entity.get(field_name)
        if value is None:
            continue
        if value not in allowed:
            errors.append(f"Invalid value for {field_name}: {value}. Must be one of: {', '.join(allowed)}")

    designation = entity.get("designation")
    if designation is not None and designation not in DESIGNATION_VALUES:
        errors.append(f"Invalid designation: {designation}. Must be one of: {', '.join(DESIGNATION_VALUES)}")

    if "confidence" in entity:
        confidence = entity["confidence"]
        if (
            isinstance(confidence, bool)
            or not isinstance(confidence, (int, float))
            or not 0.0 <= float(confidence) <= 1.0
        ):
            errors.append("Confidence must be a number between 0 and 1")

    return EntityValidation(valid=not errors, errors=errors)


def _matches_type(value: Any, type_: str) -> bool:
    if type_ == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if type_ == "string":
        return isinstance(value, str)
    if type_ == "boolean":
        return isinstance(value, bool)
    if type_ == "array":
        return isinstance(value, list)
    if type_ == "object":
        return isinstance(value, dict)
    return True
