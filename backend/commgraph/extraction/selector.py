"""Tiered extraction with timeouts, retries, fallback and cost control."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from time import perf_counter
from typing import Any, Awaitable, Callable, Iterable, Sequence

from commgraph.extraction.complexity import ComplexityAnalysis, analyze_complexity
from commgraph.extraction.costs import DailyCostTracker, estimate_cost
from commgraph.extraction.errors import (
    AllStrategiesFailed,
    CostLimitExceeded,
    ExtractionError,
    ExtractionTimeout,
    LLMGatewayError,
)
from commgraph.extraction.gateway import Completion, CompletionConfig, LLMGateway
from commgraph.extraction.prompt_builder import EXTRACTION_PROMPT_VERSION, build_extraction_prompt, get_system_prompt
from commgraph.extraction.relationship_validator import RelationshipValidator
from commgraph.extraction.response_parser import ResponseParser
from commgraph.extraction.rule_based_extractor import RuleBasedExtractor
from commgraph.extraction.strategies import (
    DEFAULT_FALLBACK_ORDER,
    DEFAULT_TIERS,
    ExtractionOptions,
    TierConfig,
    fallback_chain,
    select_tier,
)
from commgraph.extraction.types import ExtractionResult, Provenance

logger = logging.getLogger(__name__)

HIGH_ACCURACY_MIN_REMAINING_BUDGET = 0.05


@dataclass(slots=True)
class BatchMessage:
    """One message submitted to a batch extraction."""

    text: str
    id: str | None = None
    communication_type: str | None = None


@dataclass(slots=True)
class BatchItemResult:
    """Per-message outcome of a batch extraction."""

    id: str
    success: bool
    result: ExtractionResult | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "success": self.success}
        if self.result is not None:
            payload.update(self.result.to_dict())
        if self.error is not None:
            payload["error"] = self.error
        return payload


class ExtractionStrategySelector:
    """Route each message to a model tier and degrade gracefully on failure."""

    def __init__(
        self,
        gateway: LLMGateway,
        *,
        tiers: dict[str, TierConfig] | None = None,
        cost_tracker: DailyCostTracker | None = None,
        daily_cost_limit: float = 10.0,
        max_retries: int = 2,
        retry_backoff_seconds: float = 2.0,
        fallback_order: Iterable[str] = DEFAULT_FALLBACK_ORDER,
        enable_basic_fallback: bool = True,
        relationship_validator: RelationshipValidator | None = None,
        high_score: int = 4,
        medium_score: int = 2,
        batch_size: int = 3,
        batch_delay_seconds: float = 1.0,
        batch_high_cost_delay_seconds: float = 3.0,
        batch_high_cost_threshold: float = 0.50,
        batch_budget: float = 0.10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._tiers = dict(tiers or DEFAULT_TIERS)
        self._cost_tracker = cost_tracker or DailyCostTracker()
        self._daily_cost_limit = daily_cost_limit
        self._max_retries = max(0, max_retries)
        self._retry_backoff_seconds = retry_backoff_seconds
        self._fallback_order = tuple(fallback_order)
        self._enable_basic_fallback = enable_basic_fallback
        self._relationship_validator = relationship_validator or RelationshipValidator()
        self._high_score = high_score
        self._medium_score = medium_score
        self._batch_size = max(1, batch_size)
        self._batch_delay_seconds = batch_delay_seconds
        self._batch_high_cost_delay_seconds = batch_high_cost_delay_seconds
        self._batch_high_cost_threshold = batch_high_cost_threshold
        self._batch_budget = batch_budget
        self._sleep = sleep
        self._basic_extractor = RuleBasedExtractor()

    @property
    def cost_tracker(self) -> DailyCostTracker:
        return self._cost_tracker

    @property
    def tiers(self) -> dict[str, TierConfig]:
        return dict(self._tiers)

    def analyze(self, text: str) -> ComplexityAnalysis:
        return analyze_complexity(text, high_score=self._high_score, medium_score=self._medium_score)

    async def extract_entities(
        self,
        text: str,
        options: ExtractionOptions | None = None,
        *,
        provenance: Provenance = Provenance.LLM_EXTRACTION,
    ) -> ExtractionResult:
        """Extract entities and relationships from one message.

        Walks the selected tier and then the fallback tiers. When every tier
        fails the rule-based sweep is returned, so the only errors that reach
        the caller are ``CostLimitExceeded`` and, with the basic fallback
        disabled, ``AllStrategiesFailed``.
        """

        if not text or not text.strip():
            raise ValueError("text must be a non-empty string")
        options = options or ExtractionOptions()
        started = perf_counter()
        complexity = self.analyze(text)
        selected = select_tier(complexity, options, self._tiers)
        logger.info(
            "extraction.strategy_selected tier=%s level=%s score=%d words=%d",
            selected.name,
            complexity.level,
            complexity.score,
            complexity.word_count,
        )

        last_error: ExtractionError | None = None
        for position, tier in enumerate(fallback_chain(selected, self._tiers, self._fallback_order)):
            try:
                result = await self._run_tier(tier, text, options, provenance=provenance)
            except CostLimitExceeded:
                raise
            except ExtractionError as exc:
                last_error = exc
                logger.warning(
                    "extraction.tier_failed tier=%s position=%d error_type=%s error=%s",
                    tier.name,
                    position,
                    type(exc).__name__,
                    exc,
                )
                continue
            result.metadata.complexity = complexity.to_dict()
            result.metadata.is_fallback = result.metadata.is_fallback or position > 0
            result.metadata.duration_ms = (perf_counter() - started) * 1000.0
            return result

        if not self._enable_basic_fallback:
            raise AllStrategiesFailed(f"All extraction tiers failed: {last_error}") from last_error

        logger.error(
            "extraction.degraded_to_basic selected_tier=%s last_error=%s",
            selected.name,
            last_error,
        )
        result = self._basic_extractor.build_result(text)
        result.metadata.complexity = complexity.to_dict()
        result.metadata.duration_ms = (perf_counter() - started) * 1000.0
        if last_error is not None:
            result.metadata.validation_warnings.append(f"{type(last_error).__name__}: {last_error}")
        return result

    async def extract_batch(
        self,
        messages: Sequence[BatchMessage | str],
        options: ExtractionOptions | None = None,
    ) -> list[BatchItemResult]:
        """Extract a list of messages in fixed-size concurrent windows.

        Results come back in submission order. A window fully settles before
        the next one starts.
        """

        options = options or ExtractionOptions()
        items = [
            message if isinstance(message, BatchMessage) else BatchMessage(text=str(message))
            for message in messages
        ]
        results: list[BatchItemResult] = []
        batch_cost = 0.0

        for window_start in range(0, len(items), self._batch_size):
            window = items[window_start : window_start + self._batch_size]
            window_options = options
            if options.force_high_accuracy and self._batch_budget - batch_cost <= HIGH_ACCURACY_MIN_REMAINING_BUDGET:
                window_options = options.without_high_accuracy()
            outcomes = await asyncio.gather(
                *(
                    self._extract_batch_item(item, window_start + offset, window_options)
                    for offset, item in enumerate(window)
                )
            )
            for outcome in outcomes:
                if outcome.result is not None:
                    batch_cost += outcome.result.metadata.cost
                results.append(outcome)

            if window_start + self._batch_size < len(items):
                delay = (
                    self._batch_high_cost_delay_seconds
                    if batch_cost > self._batch_high_cost_threshold
                    else self._batch_delay_seconds
                )
                await self._sleep(delay)

        logger.info(
            "extraction.batch_complete messages=%d succeeded=%d batch_cost=%.4f",
            len(results),
            sum(1 for r in results if r.success),
            batch_cost,
        )
        return results

    async def _extract_batch_item(
        self,
        item: BatchMessage,
        index: int,
        options: ExtractionOptions,
    ) -> BatchItemResult:
        item_id = item.id or f"msg_{index}"
        item_options = replace(options, communication_type=item.communication_type) if item.communication_type else options
        try:
            result = await self.extract_entities(item.text, item_options, provenance=Provenance.BATCH_PROCESSING)
        except (ExtractionError, ValueError) as exc:
            logger.error("extraction.batch_item_failed id=%s error=%s", item_id, exc)
            return BatchItemResult(id=item_id, success=False, error=str(exc))
        return BatchItemResult(id=item_id, success=True, result=result)

    async def _run_tier(
        self,
        tier: TierConfig,
        text: str,
        options: ExtractionOptions,
        *,
        provenance: Provenance,
    ) -> ExtractionResult:
        prompt = build_extraction_prompt(
            text,
            communication_type=options.communication_type,
            context=options.context,
            domain=options.domain,
            registry=self._relationship_validator.registry,
        )
        config = CompletionConfig(
            provider=tier.provider,
            model=tier.model,
            max_tokens=tier.max_tokens,
            temperature=tier.temperature,
            system_prompt=get_system_prompt(),
        )

        attempt = 0
        while True:
            attempt += 1
            if self._cost_tracker.exceeds(self._daily_cost_limit):
                raise CostLimitExceeded(self._cost_tracker.daily_cost, self._daily_cost_limit)
            try:
                completion = await self._complete_with_timeout(prompt, config, tier)
                break
            except LLMGatewayError as exc:
                if attempt > self._max_retries:
                    raise
                delay = self._retry_backoff_seconds * attempt
                logger.warning(
                    "extraction.attempt_failed tier=%s attempt=%d retry_in_s=%.1f error=%s",
                    tier.name,
                    attempt,
                    delay,
                    exc,
                )
                await self._sleep(delay)

        cost = estimate_cost(tier.provider, tier.model, completion.usage)
        await self._cost_tracker.add(cost)
        if cost > tier.max_cost:
            logger.warning(
                "extraction.tier_cost_exceeded tier=%s cost=%.4f max_cost=%.4f",
                tier.name,
                cost,
                tier.max_cost,
            )

        parser = ResponseParser(
            default_confidence=tier.default_confidence,
            min_confidence=tier.min_confidence,
            relationship_validator=self._relationship_validator,
            provenance=provenance,
        )
        result = parser.parse(completion.content, source_text=text)
        result.metadata.model = tier.model
        result.metadata.provider = tier.provider
        result.metadata.strategy = tier.label
        result.metadata.tier = tier.name
        result.metadata.cost = cost
        result.metadata.attempts = attempt
        result.metadata.prompt_version = EXTRACTION_PROMPT_VERSION
        return result

    async def _complete_with_timeout(
        self,
        prompt: str,
        config: CompletionConfig,
        tier: TierConfig,
    ) -> Completion:
        try:
            return await asyncio.wait_for(self._call_gateway(prompt, config), timeout=tier.max_time_seconds)
        except asyncio.TimeoutError as exc:
            raise ExtractionTimeout(tier.name, tier.max_time_seconds) from exc

    async def _call_gateway(self, prompt: str, config: CompletionConfig) -> Completion:
        try:
            completion = await self._gateway.complete(prompt, config)
        except ExtractionError:
            raise
        except Exception as exc:
            raise LLMGatewayError(f"{config.provider} call failed: {exc}") from exc
        if not isinstance(completion, Completion):
            raise LLMGatewayError(f"{config.provider} returned no completion")
        return completion
