"""Controlled entity type system for communication extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


ENTITY_TYPE_VALUES: tuple[str, ...] = (
    "person",
    "project",
    "decision",
    "timeline",
    "location",
    "material",
    "cost",
    "issue",
    "task",
    "document",
    "software_system",
    "command_signature",
    "command_execution",
)
ENTITY_TYPE_SET = set(ENTITY_TYPE_VALUES)

# Extraction payloads group entities into plural buckets.
CATEGORY_BY_TYPE: dict[str, str] = {
    "person": "people",
    "project": "projects",
    "decision": "decisions",
    "timeline": "timeline",
    "location": "locations",
    "material": "materials",
    "cost": "costs",
    "issue": "issues",
    "task": "tasks",
    "document": "documents",
    "software_system": "software_systems",
    "command_signature": "command_signatures",
    "command_execution": "command_executions",
}
TYPE_BY_CATEGORY: dict[str, str] = {category: entity_type for entity_type, category in CATEGORY_BY_TYPE.items()}
EXTRACTION_CATEGORIES: tuple[str, ...] = tuple(CATEGORY_BY_TYPE[t] for t in ENTITY_TYPE_VALUES[:10])

DESIGNATION_VALUES: tuple[str, ...] = ("generic", "product", "instance")

PERSON_ROLES = (
    "owner",
    "contractor",
    "architect",
    "engineer",
    "subcontractor",
    "supplier",
    "inspector",
    "designer",
    "project_manager",
    "worker",
)
PROJECT_PHASES = (
    "planning",
    "permits",
    "site_preparation",
    "foundation",
    "framing",
    "roofing",
    "plumbing",
    "electrical",
    "insulation",
    "drywall",
    "flooring",
    "kitchen",
    "bathroom",
    "painting",
    "landscaping",
    "final_inspection",
    "cleanup",
)
DECISION_TYPES = (
    "approval",
    "rejection",
    "change_order",
    "material_selection",
    "schedule_change",
    "budget_adjustment",
    "design_modification",
    "contractor_selection",
)
TIMELINE_STATUSES = ("planned", "in_progress", "completed", "delayed", "cancelled", "on_hold")
LOCATION_KINDS = ("room", "area", "floor", "building", "site", "address")
MATERIAL_CATEGORIES = (
    "lumber",
    "concrete",
    "steel",
    "electrical",
    "plumbing",
    "roofing",
    "flooring",
    "fixtures",
    "hardware",
    "other",
)
COST_KINDS = ("estimate", "quote", "invoice", "actual", "budget", "overrun")
ISSUE_SEVERITIES = ("low", "medium", "high", "critical")
ISSUE_CATEGORIES = ("quality", "safety", "schedule", "budget", "design", "regulatory", "weather", "other")
ISSUE_STATUSES = ("open", "in_progress", "resolved", "closed")
TASK_STATUSES = ("pending", "in_progress", "completed", "cancelled")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
DOCUMENT_KINDS = ("plan", "permit", "contract", "invoice", "report", "specification", "drawing", "photo", "other")
DOCUMENT_STATUSES = ("draft", "pending_approval", "approved", "rejected", "final")
SOFTWARE_SYSTEM_KINDS = ("repository", "service", "database", "application")
COMMAND_EXECUTION_STATUSES = ("success", "failure")


@dataclass(frozen=True, slots=True)
class FieldRule:
    """JSON type of one entity field, with optional numeric bounds."""

    type: str
    minimum: float | None = None
    maximum: float | None = None


_TEXT = FieldRule("string")
_ARRAY = FieldRule("array")
_OBJECT = FieldRule("object")
_AMOUNT = FieldRule("number", minimum=0)


@dataclass(frozen=True, slots=True)
class EntitySchema:
    """Required fields, enumerated fields and typed properties for one entity type."""

    entity_type: str
    required: tuple[str, ...]
    enums: dict[str, tuple[str, ...]] = field(default_factory=dict)
    properties: dict[str, FieldRule] = field(default_factory=dict)

    @property
    def numeric(self) -> tuple[str, ...]:
        return tuple(name for name, rule in self.properties.items() if rule.type == "number")


ENTITY_SCHEMAS: dict[str, EntitySchema] = {
    "person": EntitySchema(
        "person",
        ("name",),
        {"role": PERSON_ROLES},
        {"name": _TEXT, "role": _TEXT, "company": _TEXT, "contact": _OBJECT, "specialties": _ARRAY},
    ),
    "project": EntitySchema(
        "project",
        ("name",),
        {"phase": PROJECT_PHASES},
        {"name": _TEXT, "phase": _TEXT, "budget": _OBJECT, "timeline": _OBJECT},
    ),
    "decision": EntitySchema(
        "decision",
        ("type", "description"),
        {"type": DECISION_TYPES},
        {
            "type": _TEXT,
            "description": _TEXT,
            "decision_maker": _TEXT,
            "impact": _OBJECT,
            "approval_required": FieldRule("boolean"),
        },
    ),
    "timeline": EntitySchema(
        "timeline",
        ("event",),
        {"status": TIMELINE_STATUSES},
        {"event": _TEXT, "status": _TEXT, "dependencies": _ARRAY},
    ),
    "location": EntitySchema("location", ("name",), {"type": LOCATION_KINDS}, {"name": _TEXT, "type": _TEXT}),
    "material": EntitySchema(
        "material",
        ("name",),
        {"category": MATERIAL_CATEGORIES},
        {"name": _TEXT, "category": _TEXT, "quantity": _AMOUNT, "unit": _TEXT, "supplier": _TEXT},
    ),
    "cost": EntitySchema(
        "cost",
        ("amount",),
        {"type": COST_KINDS},
        {"amount": _AMOUNT, "currency": _TEXT, "type": _TEXT},
    ),
    "issue": EntitySchema(
        "issue",
        ("description",),
        {"severity": ISSUE_SEVERITIES, "category": ISSUE_CATEGORIES, "status": ISSUE_STATUSES},
        {"description": _TEXT, "severity": _TEXT, "category": _TEXT, "status": _TEXT},
    ),
    "task": EntitySchema(
        "task",
        ("description",),
        {"status": TASK_STATUSES, "priority": TASK_PRIORITIES},
        {"description": _TEXT, "assignee": _TEXT, "status": _TEXT, "priority": _TEXT},
    ),
    "document": EntitySchema(
        "document",
        ("name",),
        {"type": DOCUMENT_KINDS, "status": DOCUMENT_STATUSES},
        {"name": _TEXT, "type": _TEXT, "status": _TEXT},
    ),
    "software_system": EntitySchema(
        "software_system",
        ("name", "type"),
        {"type": SOFTWARE_SYSTEM_KINDS},
        {"name": _TEXT, "type": _TEXT},
    ),
    "command_signature": EntitySchema(
        "command_signature",
        ("name", "system", "template"),
        properties={"name": _TEXT, "system": _TEXT, "template": _TEXT, "parameters": _ARRAY},
    ),
    "command_execution": EntitySchema(
        "command_execution",
        ("command_string", "timestamp", "status"),
        {"status": COMMAND_EXECUTION_STATUSES},
        {"command_string": _TEXT, "timestamp": _TEXT, "status": _TEXT, "exit_code": FieldRule("number")},
    ),
}

_ENTITY_TYPE_SYNONYMS: dict[str, str] = {
    "people": "person",
    "individual": "person",
    "contact": "person",
    "contractor": "person",
    "projects": "project",
    "job": "project",
    "decisions": "decision",
    "timelines": "timeline",
    "event": "timeline",
    "schedule": "timeline",
    "milestone": "timeline",
    "locations": "location",
    "place": "location",
    "site": "location",
    "room": "location",
    "materials": "material",
    "equipment": "material",
    "costs": "cost",
    "price": "cost",
    "expense": "cost",
    "budget": "cost",
    "issues": "issue",
    "problem": "issue",
    "risk": "issue",
    "tasks": "task",
    "action_item": "task",
    "todo": "task",
    "documents": "document",
    "file": "document",
    "permit": "document",
    "software_systems": "software_system",
    "system": "software_system",
    "command_signatures": "command_signature",
    "command_executions": "command_execution",
}


def normalize_entity_type(raw_type: str | None) -> str | None:
    """Normalize a raw type label or plural bucket to a registered entity type."""

    cleaned = _clean_text(raw_type)
    if not cleaned:
        return None
    key = cleaned.lower().replace(" ", "_").replace("-", "_")
    if key in ENTITY_TYPE_SET:
        return key
    return _ENTITY_TYPE_SYNONYMS.get(key)


def category_for_type(entity_type: str) -> str:
    """Return the plural extraction bucket for an entity type."""

    return CATEGORY_BY_TYPE.get(entity_type, f"{entity_type}s")


def get_entity_schema(entity_type: str) -> EntitySchema | None:
    return ENTITY_SCHEMAS.get(entity_type)


def create_entity_template(entity_type: str) -> dict[str, Any]:
    """Return an empty entity carrying every required field."""

    schema = ENTITY_SCHEMAS.get(entity_type)
    if schema is None:
        raise ValueError(f"Unknown entity type: {entity_type}")
    template: dict[str, Any] = {}
    for field_name in schema.required:
        template[field_name] = 0.0 if field_name in schema.numeric else ""
    template["confidence"] = 0.0
    return template


def entity_display_name(entity: dict[str, Any], entity_type: str | None = None) -> str:
    """Best human label for an extracted entity."""

    for key in ("name", "description", "event", "command_string", "template"):
        value = entity.get(key)
        if isinstance(value, str) and value.strip():
            return _clean_text(value)
    amount = entity.get("amount")
    if entity_type == "cost" and isinstance(amount, (int, float)) and not isinstance(amount, bool):
        currency = entity.get("currency") or "USD"
        return f"{amount:,.2f} {currency}"
    return ""


def _clean_text(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(value.strip().split())
