"""Extraction error hierarchy."""


class ExtractionError(RuntimeError):
    """Base class for extraction failures."""


class LLMGatewayError(ExtractionError):
    """Raised when the provider call fails or returns an unusable envelope."""


class ExtractionTimeout(ExtractionError):
    """Raised when a tier exceeds its time budget."""

    def __init__(self, tier: str, timeout_seconds: float) -> None:
        super().__init__(f"Extraction tier {tier} timed out after {timeout_seconds:.1f}s")
        self.tier = tier
        self.timeout_seconds = timeout_seconds


class CostLimitExceeded(ExtractionError):
    """Raised before a call when the daily running cost is over the ceiling."""

    def __init__(self, daily_cost: float, limit: float) -> None:
        super().__init__(f"Daily cost limit exceeded: ${daily_cost:.4f} > ${limit:.2f}")
        self.daily_cost = daily_cost
        self.limit = limit


class AllStrategiesFailed(ExtractionError):
    """Raised when every tier failed and the rule-based fallback is disabled."""
