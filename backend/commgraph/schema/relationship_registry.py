"""Static registry of relationship types grouped by domain."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal

Cardinality = Literal["one-to-one", "one-to-many", "many-to-one", "many-to-many"]
UNIVERSAL_DOMAIN = "universal"


@dataclass(frozen=True, slots=True)
class RelationshipDefinition:
    """One registered relationship type."""

    type: str
    label: str
    description: str
    domains: tuple[str, ...]
    cardinality: Cardinality
    inverse: str | None = None
    bidirectional: bool = False
    temporal: bool = False
    source_types: tuple[str, ...] = ()
    target_types: tuple[str, ...] = ()


def _define(
    type_: str,
    description: str,
    domain: str,
    cardinality: Cardinality,
    *,
    inverse: str | None = None,
    bidirectional: bool = False,
    temporal: bool = False,
    source_types: Iterable[str] = (),
    target_types: Iterable[str] = (),
) -> RelationshipDefinition:
    return RelationshipDefinition(
        type=type_,
        label=type_.replace("_", " ").title(),
        description=description,
        domains=(domain,),
        cardinality=cardinality,
        inverse=inverse,
        bidirectional=bidirectional,
        temporal=temporal,
        source_types=tuple(source_types),
        target_types=tuple(target_types),
    )


UNIVERSAL_RELATIONSHIPS: tuple[RelationshipDefinition, ...] = (
    _define(
        "uses",
        "Entity uses a tool, resource or system",
        UNIVERSAL_DOMAIN,
        "many-to-many",
        inverse="used_by",
        source_types=("person", "organization", "system"),
        target_types=("tool", "resource", "system", "material"),
    ),
    _define(
        "manages",
        "Person manages a project, system or resource",
        UNIVERSAL_DOMAIN,
        "one-to-many",
        inverse="managed_by",
        source_types=("person",),
        target_types=("project", "system", "resource", "organization"),
    ),
    _define(
        "responsible_for",
        "Person has responsibility for a task, project or area",
        UNIVERSAL_DOMAIN,
        "many-to-many",
        inverse="responsibility_of",
        source_types=("person",),
        target_types=("task", "project", "area", "outcome"),
    ),
    _define(
        "assigned_to",
        "Task or project is assigned to a person",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        inverse="assignee_of",
        source_types=("task", "project"),
        target_types=("person",),
    ),
    _define(
        "located_at",
        "Entity is physically located at a place",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        inverse="location_of",
        source_types=("person", "asset", "project", "organization"),
        target_types=("location", "address", "property"),
    ),
    _define(
        "belongs_to",
        "Entity belongs to a person or organization",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        inverse="owner_of",
        source_types=("asset", "location", "property", "system"),
        target_types=("person", "organization"),
    ),
    _define(
        "contains",
        "Entity contains other entities",
        UNIVERSAL_DOMAIN,
        "one-to-many",
        inverse="contained_in",
        source_types=("location", "system", "project"),
        target_types=("asset", "component", "subsystem"),
    ),
    _define(
        "configured_on",
        "System or project was configured on a date",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        temporal=True,
        source_types=("system", "project"),
        target_types=("date", "timestamp"),
    ),
    _define(
        "active_during",
        "Entity was active during a time period",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        temporal=True,
        source_types=("project", "event", "task"),
        target_types=("timerange", "period"),
    ),
    _define(
        "owns",
        "Entity owns an asset or property",
        UNIVERSAL_DOMAIN,
        "many-to-many",
        inverse="owned_by",
        source_types=("person", "organization"),
        target_types=("asset", "property", "system"),
    ),
    _define(
        "reports_to",
        "Person reports to another person or organization",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        inverse="supervisor_of",
        source_types=("person",),
        target_types=("person", "organization"),
    ),
    _define(
        "depends_on",
        "Entity cannot proceed without another entity",
        UNIVERSAL_DOMAIN,
        "many-to-many",
        inverse="dependency_of",
        source_types=("task", "project", "software_system"),
        target_types=("task", "project", "software_system", "material"),
    ),
    _define(
        "part_of",
        "Entity is a component of a larger entity",
        UNIVERSAL_DOMAIN,
        "many-to-one",
        inverse="has_part",
        source_types=("task", "location", "material", "software_system"),
        target_types=("project", "location", "software_system"),
    ),
    _define(
        "related_to",
        "Generic association between two entities",
        UNIVERSAL_DOMAIN,
        "many-to-many",
        bidirectional=True,
    ),
)

CYBERSEC_RELATIONSHIPS: tuple[RelationshipDefinition, ...] = (
    _define(
        "deployed_in",
        "Security tool or system deployed in an environment",
        "cybersec",
        "many-to-many",
        inverse="deployment_of",
        source_types=("security_tool", "system"),
        target_types=("network", "environment", "infrastructure"),
    ),
    _define(
        "integrates_with",
        "Systems exchange data with each other",
        "cybersec",
        "many-to-many",
        bidirectional=True,
        source_types=("system", "security_tool", "platform"),
        target_types=("system", "security_tool", "platform"),
    ),
    _define(
        "monitors",
        "Monitoring system observes an asset",
        "cybersec",
        "one-to-many",
        inverse="monitored_by",
        source_types=("monitoring_system", "siem", "security_tool"),
        target_types=("system", "network", "asset"),
    ),
    _define(
        "alerts_to",
        "System sends alerts to a person or team",
        "cybersec",
        "many-to-many",
        inverse="receives_alerts_from",
        source_types=("system", "security_tool", "monitoring_system"),
        target_types=("person", "team", "organization"),
    ),
    _define(
        "protects",
        "Security control protects an asset",
        "cybersec",
        "many-to-many",
        inverse="protected_by",
        source_types=("security_control", "security_tool", "system"),
        target_types=("asset", "system", "network"),
    ),
    _define(
        "escalates_to",
        "Alert or incident escalates to a person or team",
        "cybersec",
        "many-to-one",
        inverse="escalation_target_for",
        source_types=("alert", "incident", "event"),
        target_types=("person", "team"),
    ),
    _define(
        "investigates",
        "Person investigates an incident",
        "cybersec",
        "many-to-many",
        inverse="investigated_by",
        source_types=("person",),
        target_types=("incident", "alert", "event"),
    ),
    _define(
        "remediates",
        "Entity remediates a vulnerability or incident",
        "cybersec",
        "many-to-many",
        inverse="remediated_by",
        source_types=("person", "system", "security_tool"),
        target_types=("vulnerability", "issue", "incident"),
    ),
)

CONSTRUCTION_RELATIONSHIPS: tuple[RelationshipDefinition, ...] = (
    _define(
        "installed_in",
        "Component or material installed in a structure",
        "construction",
        "many-to-one",
        inverse="installation_of",
        source_types=("component", "material", "system"),
        target_types=("structure", "location", "building"),
    ),
    _define(
        "connects_to",
        "Systems or components are connected",
        "construction",
        "many-to-many",
        bidirectional=True,
        source_types=("system", "component", "infrastructure"),
        target_types=("system", "component", "infrastructure"),
    ),
    _define(
        "supports",
        "Structure bears the load of another element",
        "construction",
        "one-to-many",
        inverse="supported_by",
        source_types=("structure", "foundation", "beam"),
        target_types=("structure", "component", "system"),
    ),
    _define(
        "requires",
        "Task or component requires a material or resource",
        "construction",
        "many-to-many",
        inverse="required_by",
        source_types=("task", "component", "system"),
        target_types=("material", "tool", "resource"),
    ),
    _define(
        "phase_of",
        "Task or milestone is a phase of a project",
        "construction",
        "many-to-one",
        inverse="includes_phase",
        source_types=("task", "phase", "milestone"),
        target_types=("project",),
    ),
    _define(
        "precedes",
        "Task or phase must finish before another starts",
        "construction",
        "many-to-many",
        inverse="follows",
        temporal=True,
        source_types=("task", "phase", "milestone"),
        target_types=("task", "phase", "milestone"),
    ),
    _define(
        "inspects",
        "Person inspects work or components",
        "construction",
        "many-to-many",
        inverse="inspected_by",
        source_types=("person",),
        target_types=("work", "component", "system"),
    ),
    _define(
        "supplies",
        "Vendor supplies a material or service",
        "construction",
        "many-to-many",
        inverse="supplied_by",
        source_types=("vendor", "organization"),
        target_types=("material", "service", "component"),
    ),
)

SYSTEM_RELATIONSHIPS: tuple[RelationshipDefinition, ...] = (
    _define(
        "instantiates",
        "Command execution instantiates a command signature",
        "system",
        "many-to-one",
        inverse="instantiated_by",
        source_types=("command_execution",),
        target_types=("command_signature",),
    ),
    _define(
        "generates",
        "Software system generates a command signature",
        "system",
        "one-to-many",
        inverse="generated_by",
        source_types=("software_system",),
        target_types=("command_signature",),
    ),
)

RELATIONSHIP_DEFINITIONS: tuple[RelationshipDefinition, ...] = (
    UNIVERSAL_RELATIONSHIPS + CYBERSEC_RELATIONSHIPS + CONSTRUCTION_RELATIONSHIPS + SYSTEM_RELATIONSHIPS
)


class RelationshipRegistry:
    """Lookup helpers over the relationship type table."""

    def __init__(self, definitions: Iterable[RelationshipDefinition] = RELATIONSHIP_DEFINITIONS) -> None:
        self._definitions: dict[str, RelationshipDefinition] = {d.type: d for d in definitions}

    def validate_relationship_type(self, type_: str | None) -> bool:
        return bool(type_) and type_ in self._definitions

    def get(self, type_: str) -> RelationshipDefinition | None:
        return self._definitions.get(type_)

    def for_domain(self, domain: str | None) -> list[RelationshipDefinition]:
        """Universal relationship types plus those of the requested domain."""

        return [
            definition
            for definition in self._definitions.values()
            if UNIVERSAL_DOMAIN in definition.domains or (domain is not None and domain in definition.domains)
        ]

    def inverse_of(self, type_: str) -> str | None:
        definition = self._definitions.get(type_)
        if definition is None:
            return None
        if definition.bidirectional:
            return definition.type
        return definition.inverse

    def is_bidirectional(self, type_: str) -> bool:
        definition = self._definitions.get(type_)
        return definition.bidirectional if definition is not None else False

    @property
    def types(self) -> list[str]:
        return sorted(self._definitions)


def normalize_relationship_label(value: str | None) -> str:
    """Normalize relationship labels to snake_case."""

    if not value:
        return ""
    cleaned = re.sub(r"\s+", " ", value).strip(" \t\r\n.,:;\"'")
    if not cleaned:
        return ""
    return re.sub(r"[^a-z0-9]+", "_", cleaned.lower()).strip("_")
