# src/scheduler/refresh.py — v2
"""Scheduled refresh: fetch pages, categorize in batches, persist.

Pages are fetched in parallel and a failing page contributes no items.
Batches are categorized one after another with a short pause between them.
A run is reported as failed only when nothing was fetched or nothing was
categorized; anything else is a success with reduced counts.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from cron_converter import Cron

from dealcache.categorize.pipeline import CategorizationPipeline
from dealcache.config.settings import Settings
from dealcache.core.errors import FetchFailure, LimitExceededError
from dealcache.core.models import ItemsByCategory, RawItem, RefreshReport
from dealcache.logging.context import job_context, set_batch
from dealcache.scheduler.guard import RunGuard
from dealcache.source.base_fetcher import BaseSourceFetcher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """Cron-driven refresh job with run-overlap prevention."""

    def __init__(
        self,
        settings: Settings,
        fetcher: BaseSourceFetcher,
        pipeline: CategorizationPipeline,
        guard: RunGuard,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._pipeline = pipeline
        self._guard = guard
        self._sleep = sleep
        self._clock = clock
        self.cron = Cron(settings.refresh_cron)
        self.running = False
        self.task: asyncio.Task[None] | None = None
        self.last_report: RefreshReport | None = None

    # --- Fetch ---

    async def _fetch_one(self, page: int) -> list[RawItem] | None:
        try:
            items = await self._fetcher.fetch_page(page)
        except Exception as e:
            logger.warning("%s", FetchFailure(page, e))
            return None
        logger.debug("Page %d: %d items", page, len(items))
        return list(items)

    async def fetch_pages(self, max_pages: int) -> tuple[list[RawItem], int]:
        """Fetch pages 1..max_pages concurrently.

        Returns:
            (all items, number of pages that were fetched successfully).

        Raises:
            LimitExceededError: ``max_pages`` is above the configured ceiling.
        """
        ceiling = self._settings.max_fetch_pages_ceiling
        if max_pages > ceiling:
            raise LimitExceededError("max_pages", max_pages, ceiling)

        pages = await asyncio.gather(*(self._fetch_one(p) for p in range(1, max_pages + 1)))
        items = [item for page in pages if page for item in page]
        fetched = sum(1 for page in pages if page is not None)
        logger.info("Fetched %d items from %d/%d pages", len(items), fetched, max_pages)
        return items, fetched

    # --- One run ---

    async def run_once(
        self,
        max_pages: int | None = None,
        batch_size: int | None = None,
        use_classifier: bool | None = None,
    ) -> RefreshReport:
        """Run fetch → categorize → persist once, unless a run is in progress."""
        max_pages = max_pages or self._settings.refresh_max_pages
        ceiling = self._settings.max_fetch_pages_ceiling
        if max_pages > ceiling:
            raise LimitExceededError("max_pages", max_pages, ceiling)
        if not self._guard.try_acquire():
            return RefreshReport(status="skipped")

        started = time.monotonic()
        try:
            with job_context("refresh"):
                report = await self._run(
                    max_pages,
                    batch_size or self._settings.categorization_batch_size,
                    self._settings.refresh_use_classifier if use_classifier is None else use_classifier,
                )
        except Exception as e:
            logger.error("Refresh run failed: %s", e, exc_info=True)
            report = RefreshReport(status="failed", error=str(e))
        finally:
            self._guard.release()

        report.duration_seconds = round(time.monotonic() - started, 3)
        self.last_report = report
        logger.info(
            "Refresh %s: %d fetched, %d categorized (%d%% from cache, %d new) in %.1fs",
            report.status, report.total_fetched, report.total_categorized,
            report.percent_from_cache, report.newly_persisted_count, report.duration_seconds,
        )
        return report

    async def _run(self, max_pages: int, batch_size: int, use_classifier: bool) -> RefreshReport:
        items, pages_fetched = await self.fetch_pages(max_pages)
        if not items:
            return RefreshReport(
                status="failed", error="No items fetched", pages_fetched=pages_fetched
            )

        batches = [items[i:i + batch_size] for i in range(0, len(items), batch_size)]
        merged: ItemsByCategory = {}
        from_cache = 0
        newly_persisted = 0
        categorized = 0
        processed = 0

        for index, batch in enumerate(batches):
            if index:
                await self._sleep(self._settings.inter_batch_pause_seconds)
            set_batch(index + 1)
            try:
                result = await self._pipeline.categorize_items(
                    batch, use_classifier=use_classifier, persist=True
                )
            except Exception as e:
                logger.error("Batch %d/%d failed: %s", index + 1, len(batches), e, exc_info=True)
                continue
            finally:
                set_batch(None)

            processed += 1
            categorized += result.total
            if result.from_cache:
                from_cache += result.total
            else:
                newly_persisted += result.persisted_count
            for label, group in result.items.items():
                merged.setdefault(label, []).extend(group)

        report = RefreshReport(
            status="success",
            pages_fetched=pages_fetched,
            total_fetched=len(items),
            total_categorized=categorized,
            categories=sorted(merged),
            batches_processed=processed,
            from_cache_count=from_cache,
            newly_persisted_count=newly_persisted,
            percent_from_cache=round(from_cache / categorized * 100) if categorized else 0,
            items=merged,
        )
        if not categorized:
            report.status = "failed"
            report.error = "No items categorized"
        return report

    # --- Cron loop ---

    def next_run_after(self, moment: datetime) -> datetime:
        """First scheduled time at or after ``moment``."""
        return self.cron.schedule(start_date=moment).next()

    async def _run_loop(self) -> None:
        start = self._clock()
        while self.running:
            try:
                next_run = self.next_run_after(start)
                delay = max((next_run - self._clock()).total_seconds(), 0.0)
                logger.debug("Next refresh at %s (in %.0fs)", next_run.isoformat(), delay)
                await self._sleep(delay)
                if not self.running:
                    break
                await self.run_once()
                start = max(self._clock(), next_run + timedelta(minutes=1))
            except Exception as e:
                logger.error("Error in refresh loop: %s", e, exc_info=True)
                await self._sleep(60)
                start = self._clock()

    def start(self) -> None:
        if self.running:
            logger.warning("Refresh scheduler already running")
            return
        logger.info("Starting refresh scheduler with cron %r", self._settings.refresh_cron)
        self.running = True
        self.task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        self.running = False
        if self.task is not None:
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
            self.task = None
        logger.info("Refresh scheduler stopped")
