# src/api/service.py — v2
"""Service context: one object holding every long-lived handle.

Usage:
    from dealcache.api.service import open_service
    service = await open_service(settings, fetcher=my_fetcher)
    try:
        result = await service.get_items_with_fallback(min_required=100)
    finally:
        await service.close()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from dealcache.cache.durable_store import DurableStore
from dealcache.cache.ephemeral import EphemeralCache, open_ephemeral_cache
from dealcache.cache.orchestrator import CacheOrchestrator
from dealcache.categorize.pipeline import CategorizationPipeline
from dealcache.categorize.strategies import (
    ClassifierStrategy,
    FallbackStrategy,
    KeywordStrategy,
    LLMStrategy,
)
from dealcache.config.settings import Settings
from dealcache.core.errors import DurableStoreError
from dealcache.core.models import CachedItemsResult, CategorizeResult, RawItem, RefreshReport
from dealcache.llm.client_factory import create_llm_client
from dealcache.scheduler.cleanup import CleanupScheduler
from dealcache.scheduler.guard import RunGuard
from dealcache.scheduler.refresh import RefreshScheduler
from dealcache.source.base_fetcher import BaseSourceFetcher, NullFetcher, load_fetcher

logger = logging.getLogger(__name__)


def build_classifier(settings: Settings) -> ClassifierStrategy | None:
    """LLM-with-keyword-fallback strategy, or None when the LLM is unavailable."""
    if not settings.classifier_enabled:
        logger.info("Hosted classifier disabled; keyword classification only")
        return None
    if not settings.classifier_configured:
        logger.warning("OPENAI_API_KEY not set; keyword classification only")
        return None
    client = create_llm_client(settings.classifier_provider, settings.openai_model, settings)
    return FallbackStrategy(
        LLMStrategy(
            client,
            temperature=settings.classifier_temperature,
            max_tokens=settings.classifier_max_tokens,
        ),
        KeywordStrategy(),
    )


@dataclass
class ServiceContext:
    """Long-lived handles shared by request handlers and scheduled jobs."""

    settings: Settings
    durable: DurableStore
    ephemeral: EphemeralCache
    classifier: ClassifierStrategy | None
    pipeline: CategorizationPipeline
    fetcher: BaseSourceFetcher
    refresh_guard: RunGuard = field(default_factory=lambda: RunGuard("refresh"))
    cleanup_guard: RunGuard = field(default_factory=lambda: RunGuard("cleanup"))

    def __post_init__(self) -> None:
        self.orchestrator = CacheOrchestrator(self.settings, self.durable, self.ephemeral)
        self.refresh = RefreshScheduler(
            self.settings, self.fetcher, self.pipeline, self.refresh_guard
        )
        self.cleanup = CleanupScheduler(
            self.ephemeral,
            self.cleanup_guard,
            interval_seconds=self.settings.cache_cleanup_interval_seconds,
            expiration_seconds=self.settings.cache_expiration_seconds,
        )

    async def get_cached_items(
        self,
        days: int | None = None,
        limit: int | None = None,
        skip_ephemeral: bool = False,
        min_required: int | None = None,
    ) -> CachedItemsResult:
        return await self.orchestrator.get_cached_items(
            days=days, limit=limit, skip_ephemeral=skip_ephemeral, min_required=min_required
        )

    async def get_items_with_fallback(
        self,
        days: int | None = None,
        limit: int | None = None,
        min_required: int | None = None,
        fallback_pages: int | None = None,
        skip_ephemeral: bool = False,
    ) -> CachedItemsResult:
        """Cached items, refreshing once when fewer than ``min_required`` exist.

        Raises:
            LimitExceededError: ``limit`` or ``fallback_pages`` above its ceiling.
            NotConfiguredError: The durable store has no credentials.
        """
        result = await self.get_cached_items(days, limit, skip_ephemeral, min_required)
        if not min_required or result.stats.total_items >= min_required:
            return result

        pages = fallback_pages or self.settings.fallback_pages_default
        logger.info(
            "Only %d/%d cached items, refreshing %d pages",
            result.stats.total_items, min_required, pages,
        )
        report = await self.refresh.run_once(max_pages=pages)
        if report.status == "skipped":
            logger.info("Refresh already running; returning %d cached items", result.stats.total_items)
            return result
        if not report.success:
            logger.warning("Fallback refresh failed: %s", report.error)

        return await self.get_cached_items(days, limit, skip_ephemeral=True, min_required=min_required)

    async def categorize(
        self,
        items: Iterable[RawItem | Mapping[str, Any]],
        use_classifier: bool | None = None,
        persist: bool = True,
    ) -> CategorizeResult:
        if use_classifier is None:
            use_classifier = self.settings.classifier_enabled
        return await self.pipeline.categorize_items(items, use_classifier, persist)

    async def refresh_now(self, max_pages: int | None = None) -> RefreshReport:
        return await self.refresh.run_once(max_pages=max_pages)

    async def stats(self) -> dict[str, Any]:
        """Ephemeral backend state, durable row count and job counters.

        ``durable_records`` is None when the store is not configured or the
        count request failed.
        """
        durable_records: int | None = None
        if self.durable.configured:
            try:
                durable_records = await self.durable.count()
            except DurableStoreError as e:
                logger.warning("Durable record count failed: %s", e)
        return {
            "ephemeral": self.ephemeral.stats(),
            "durable_table": self.durable.table,
            "durable_records": durable_records,
            "jobs": {
                guard.name: {
                    "running": guard.running,
                    "runs_started": guard.runs_started,
                    "runs_finished": guard.runs_finished,
                }
                for guard in (self.refresh_guard, self.cleanup_guard)
            },
        }

    async def close(self) -> None:
        await self.refresh.stop()
        await self.cleanup.stop()
        await self.durable.close()
        await self.ephemeral.close()
        primary = getattr(self.classifier, "primary", self.classifier)
        if isinstance(primary, LLMStrategy):
            await primary.close()
        logger.debug("Service closed")


async def open_service(
    settings: Settings,
    fetcher: BaseSourceFetcher | None = None,
    durable: DurableStore | None = None,
    ephemeral: EphemeralCache | None = None,
    classifier: ClassifierStrategy | None = None,
) -> ServiceContext:
    """Build the service context once at process start.

    Any handle passed in is used as-is; the rest is built from settings.
    """
    if fetcher is None:
        if settings.source_fetcher:
            fetcher = load_fetcher(settings.source_fetcher)
        else:
            logger.warning("No source fetcher configured; refresh runs will fetch nothing")
            fetcher = NullFetcher()

    if durable is None:
        durable = DurableStore(settings)
    if not durable.configured:
        logger.warning("Durable store not configured; cached queries will be unavailable")

    if ephemeral is None:
        ephemeral = await open_ephemeral_cache(settings)
    if classifier is None:
        classifier = build_classifier(settings)

    pipeline = CategorizationPipeline(durable, classifier=classifier)
    return ServiceContext(
        settings=settings,
        durable=durable,
        ephemeral=ephemeral,
        classifier=classifier,
        pipeline=pipeline,
        fetcher=fetcher,
    )
