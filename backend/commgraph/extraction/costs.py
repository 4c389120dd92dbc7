"""Per-call cost estimation and the daily running cost."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable

logger = logging.getLogger(__name__)

# (provider, model substring) -> (input, output) USD per 1K tokens, first match wins.
MODEL_RATES: tuple[tuple[str, str, float, float], ...] = (
    ("ollama", "", 0.0, 0.0),
    ("*", "gpt-4", 0.03, 0.06),
    ("*", "gpt-3.5", 0.001, 0.002),
    ("*", "claude-3.5", 0.003, 0.015),
    ("*", "claude", 0.008, 0.024),
)
_DEFAULT_RATE = (0.002, 0.002)


@dataclass(slots=True)
class TokenUsage:
    """Token counts reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0


def model_rates(provider: str, model: str) -> tuple[float, float]:
    """Return (input, output) USD per 1K tokens for a provider/model pair."""

    lowered = model.lower()
    for rate_provider, fragment, input_rate, output_rate in MODEL_RATES:
        if rate_provider not in ("*", provider):
            continue
        if fragment in lowered:
            return input_rate, output_rate
    return _DEFAULT_RATE


def estimate_cost(provider: str, model: str, usage: TokenUsage | None) -> float:
    """Estimate the USD cost of one call from its token usage."""

    if usage is None:
        return 0.0
    input_rate, output_rate = model_rates(provider, model)
    return (usage.prompt_tokens * input_rate + usage.completion_tokens * output_rate) / 1000.0


class DailyCostTracker:
    """Running cost totals shared by concurrent extractions.

    The daily total resets when the calendar date changes. Increments happen
    once a call completes, so concurrent callers can each pass the pre-call
    check and overshoot the ceiling by at most one in-flight call each.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._lock = asyncio.Lock()
        self._day = today()
        self._daily_cost = 0.0
        self._total_cost = 0.0
        self._request_count = 0

    @property
    def daily_cost(self) -> float:
        self._roll_over()
        return self._daily_cost

    @property
    def total_cost(self) -> float:
        return self._total_cost

    @property
    def request_count(self) -> int:
        return self._request_count

    async def add(self, cost: float) -> float:
        """Record a completed call and return the new daily total."""

        async with self._lock:
            self._roll_over()
            self._daily_cost += max(0.0, cost)
            self._total_cost += max(0.0, cost)
            self._request_count += 1
            return self._daily_cost

    def exceeds(self, limit: float) -> bool:
        return self.daily_cost > limit

    def summary(self) -> dict[str, object]:
        return {
            "total_cost": round(self._total_cost, 6),
            "daily_cost": round(self.daily_cost, 6),
            "request_count": self._request_count,
            "day": self._day.isoformat(),
        }

    def _roll_over(self) -> None:
        current = self._today()
        if current != self._day:
            logger.info(
                "extraction.cost_day_rollover previous_day=%s daily_cost=%.4f",
                self._day.isoformat(),
                self._daily_cost,
            )
            self._day = current
            self._daily_cost = 0.0
