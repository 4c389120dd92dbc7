"""Extraction tiers and tier selection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable

from commgraph.extraction.complexity import ComplexityAnalysis


@dataclass(frozen=True, slots=True)
class TierConfig:
    """Provider/model pair with its cost and time budget."""

    name: str
    label: str
    provider: str
    model: str
    max_cost: float
    max_time_seconds: float
    default_confidence: float = 0.7
    min_confidence: float = 0.5
    max_tokens: int = 2000
    temperature: float = 0.1


HIGH_ACCURACY = "high_accuracy"
BALANCED = "balanced"
FAST = "fast"
LOCAL = "local"

DEFAULT_TIERS: dict[str, TierConfig] = {
    HIGH_ACCURACY: TierConfig(
        name=HIGH_ACCURACY,
        label="High Accuracy (GPT-4)",
        provider="openai",
        model="gpt-4",
        max_cost=0.10,
        max_time_seconds=30.0,
    ),
    BALANCED: TierConfig(
        name=BALANCED,
        label="Balanced (Claude 3.5)",
        provider="openrouter",
        model="anthropic/claude-3.5-sonnet",
        max_cost=0.05,
        max_time_seconds=15.0,
    ),
    FAST: TierConfig(
        name=FAST,
        label="Fast (GPT-3.5)",
        provider="openai",
        model="gpt-3.5-turbo",
        max_cost=0.02,
        max_time_seconds=10.0,
    ),
    LOCAL: TierConfig(
        name=LOCAL,
        label="Local (Ollama)",
        provider="ollama",
        model="llama3.1:8b",
        max_cost=0.0,
        max_time_seconds=60.0,
        default_confidence=0.5,
        min_confidence=0.4,
    ),
}
DEFAULT_FALLBACK_ORDER: tuple[str, ...] = (FAST,)


@dataclass(slots=True)
class ExtractionOptions:
    """Caller hints for one extraction."""

    communication_type: str = "sms"
    force_high_accuracy: bool = False
    urgent: bool = False
    prefer_local: bool = False
    context: str = ""
    domain: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)

    def without_high_accuracy(self) -> "ExtractionOptions":
        return replace(self, force_high_accuracy=False)


def select_tier(
    complexity: ComplexityAnalysis,
    options: ExtractionOptions,
    tiers: dict[str, TierConfig] = DEFAULT_TIERS,
) -> TierConfig:
    """Pick the tier for a message from its complexity and the caller's hints."""

    if options.force_high_accuracy:
        return tiers[HIGH_ACCURACY]
    if options.prefer_local and LOCAL in tiers:
        return tiers[LOCAL]
    if options.urgent:
        return tiers[FAST]
    if complexity.level == "high":
        return tiers[HIGH_ACCURACY]
    if complexity.level == "medium":
        return tiers[BALANCED]
    return tiers[FAST]


def fallback_chain(
    selected: TierConfig,
    tiers: dict[str, TierConfig] = DEFAULT_TIERS,
    order: Iterable[str] = DEFAULT_FALLBACK_ORDER,
) -> list[TierConfig]:
    """Selected tier followed by the configured fallback tiers, without repeats."""

    chain = [selected]
    for name in order:
        tier = tiers.get(name)
        if tier is not None and tier.name not in {t.name for t in chain}:
            chain.append(tier)
    return chain
