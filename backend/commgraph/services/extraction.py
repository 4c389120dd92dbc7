"""Extraction orchestration and persistence services."""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import lru_cache
from time import perf_counter

from sqlalchemy.orm import Session

from commgraph.config import get_settings
from commgraph.extraction.costs import DailyCostTracker
from commgraph.extraction.gateway import HttpLLMGateway, ProviderEndpoint
from commgraph.extraction.relationship_validator import RelationshipValidator
from commgraph.extraction.selector import BatchMessage, ExtractionStrategySelector
from commgraph.extraction.strategies import DEFAULT_TIERS, LOCAL, ExtractionOptions
from commgraph.schemas.extraction import BatchExtractionRunResult, BatchItemRead, ExtractionRunResult
from commgraph.services.entity_store import store_entities

logger = logging.getLogger(__name__)


@lru_cache
def get_cost_tracker() -> DailyCostTracker:
    """Process-wide daily cost tracker."""

    return DailyCostTracker()


def get_default_selector() -> ExtractionStrategySelector:
    """Build the strategy selector from settings."""

    settings = get_settings()
    gateway = HttpLLMGateway(
        endpoints={
            "openai": ProviderEndpoint(base_url=settings.openai_base_url, api_key=settings.openai_api_key),
            "openrouter": ProviderEndpoint(
                base_url=settings.openrouter_base_url,
                api_key=settings.openrouter_api_key,
            ),
            "anthropic": ProviderEndpoint(base_url=settings.anthropic_base_url, api_key=settings.anthropic_api_key),
            "ollama": ProviderEndpoint(base_url=settings.ollama_base_url),
        }
    )
    tiers = dict(DEFAULT_TIERS)
    tiers[LOCAL] = replace(DEFAULT_TIERS[LOCAL], model=settings.ollama_model)
    return ExtractionStrategySelector(
        gateway,
        tiers=tiers,
        cost_tracker=get_cost_tracker(),
        daily_cost_limit=settings.daily_cost_limit,
        max_retries=settings.llm_max_retries,
        retry_backoff_seconds=settings.llm_retry_backoff_seconds,
        relationship_validator=RelationshipValidator(min_confidence=settings.relationship_min_confidence),
        high_score=settings.complexity_high_score,
        medium_score=settings.complexity_medium_score,
        batch_size=settings.batch_size,
        batch_delay_seconds=settings.batch_delay_seconds,
        batch_high_cost_delay_seconds=settings.batch_high_cost_delay_seconds,
        batch_high_cost_threshold=settings.batch_high_cost_threshold,
    )


async def run_extraction(
    db: Session,
    conversation_id: str,
    text: str,
    options: ExtractionOptions | None = None,
    selector: ExtractionStrategySelector | None = None,
) -> ExtractionRunResult:
    """Extract one message and store the result."""

    total_started = perf_counter()
    options = options or ExtractionOptions()
    domain = options.domain or get_settings().default_domain
    options = replace(options, domain=domain)
    try:
        active_selector = selector or get_default_selector()

        started = perf_counter()
        result = await active_selector.extract_entities(text, options)
        extract_ms = (perf_counter() - started) * 1000.0

        started = perf_counter()
        record_id = store_entities(db, conversation_id, result, domain=domain)
        db.commit()
        persist_ms = (perf_counter() - started) * 1000.0

        logger.info(
            (
                "extraction.run_timing conversation_id=%s record_id=%s tier=%s "
                "extract_ms=%.2f persist_ms=%.2f total_ms=%.2f entities=%d relationships=%d "
                "is_fallback=%s cost=%.4f"
            ),
            conversation_id,
            record_id,
            result.metadata.tier,
            extract_ms,
            persist_ms,
            (perf_counter() - total_started) * 1000.0,
            result.entity_count,
            len(result.relationships),
            result.metadata.is_fallback,
            result.metadata.cost,
        )
        return ExtractionRunResult.from_result(record_id, conversation_id, result)
    except Exception:
        db.rollback()
        logger.exception(
            "extraction.run_failed conversation_id=%s elapsed_ms=%.2f",
            conversation_id,
            (perf_counter() - total_started) * 1000.0,
        )
        raise


async def run_batch_extraction(
    db: Session,
    conversation_id: str,
    messages: list[BatchMessage],
    options: ExtractionOptions | None = None,
    selector: ExtractionStrategySelector | None = None,
) -> BatchExtractionRunResult:
    """Extract a batch of messages and store every successful result."""

    total_started = perf_counter()
    options = options or ExtractionOptions()
    domain = options.domain or get_settings().default_domain
    options = replace(options, domain=domain)
    try:
        active_selector = selector or get_default_selector()
        outcomes = await active_selector.extract_batch(messages, options)
        items: list[BatchItemRead] = []
        for outcome in outcomes:
            record_id = None
            if outcome.result is not None:
                record_id = store_entities(
                    db,
                    conversation_id,
                    outcome.result,
                    {"message_id": outcome.id},
                    domain=domain,
                )
            items.append(BatchItemRead.from_outcome(outcome, record_id))
        db.commit()
        logger.info(
            "extraction.batch_timing conversation_id=%s messages=%d succeeded=%d total_ms=%.2f",
            conversation_id,
            len(items),
            sum(1 for item in items if item.success),
            (perf_counter() - total_started) * 1000.0,
        )
        return BatchExtractionRunResult(conversation_id=conversation_id, items=items)
    except Exception:
        db.rollback()
        logger.exception("extraction.batch_failed conversation_id=%s", conversation_id)
        raise