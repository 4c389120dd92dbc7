"""Versioned extraction prompts."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from commgraph.extraction.errors import ExtractionError
from commgraph.schema.entity_types import EXTRACTION_CATEGORIES
from commgraph.schema.relationship_registry import UNIVERSAL_DOMAIN, RelationshipRegistry

EXTRACTION_PROMPT_VERSION = "entity_extraction.v1"
_PROMPT_FILES: dict[str, Path] = {
    "entity_extraction.v1": Path(__file__).resolve().parent / "prompts" / "entity_extraction_v1.txt",
}
_MAX_RELATIONSHIP_TYPES = 10

_COMMUNICATION_HINTS: dict[str, str] = {
    "sms": "This is a short text message. Expect informal phrasing, abbreviations and implied context.",
    "email": "This is an email. Look for decisions, action items, attachments and people copied on the thread.",
    "meeting_notes": "These are meeting notes. Capture decisions, owners of action items and agreed dates.",
}


@lru_cache(maxsize=8)
def get_system_prompt(version: str = EXTRACTION_PROMPT_VERSION) -> str:
    prompt_file = _PROMPT_FILES.get(version)
    if prompt_file is None:
        raise ExtractionError(f"Extraction prompt version is not registered: {version}")
    try:
        prompt_text = prompt_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ExtractionError(f"Failed to load extraction prompt file: {prompt_file}") from exc
    if not prompt_text:
        raise ExtractionError(f"Extraction prompt file is empty: {prompt_file}")
    return prompt_text


def build_extraction_prompt(
    text: str,
    *,
    communication_type: str = "sms",
    context: str = "",
    domain: str | None = None,
    registry: RelationshipRegistry | None = None,
) -> str:
    """Render the user prompt for one message."""

    registry = registry or RelationshipRegistry()
    definitions = registry.for_domain(domain)
    domain_types = [d.type for d in definitions if UNIVERSAL_DOMAIN not in d.domains]
    universal_types = [d.type for d in definitions if UNIVERSAL_DOMAIN in d.domains]
    relationship_types = (domain_types + universal_types)[:_MAX_RELATIONSHIP_TYPES]
    lines = [
        f"Communication type: {communication_type}",
        _COMMUNICATION_HINTS.get(communication_type, ""),
        f"Entity categories: {', '.join(EXTRACTION_CATEGORIES)}",
        f"Allowed relationship types: {', '.join(relationship_types)}",
    ]
    if context.strip():
        lines.append(f"CONTEXT: {context.strip()}")
    lines.extend(["", "TEXT TO ANALYZE:", text.strip()])
    return "\n".join(lines)
