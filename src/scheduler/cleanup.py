# src/scheduler/cleanup.py — v1
"""Periodic sweep of expired ephemeral cache entries."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

from dealcache.cache.ephemeral import EphemeralCache
from dealcache.logging.context import job_context
from dealcache.scheduler.guard import RunGuard

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Sweeps the ephemeral cache once at start and then every interval.

    Args:
        ephemeral: Cache to sweep.
        guard: Skip-if-running guard for this job.
        interval_seconds: Pause between sweeps.
        expiration_seconds: Entries written this long ago or earlier are removed.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        ephemeral: EphemeralCache,
        guard: RunGuard,
        interval_seconds: int = 900,
        expiration_seconds: int = 3600,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._ephemeral = ephemeral
        self._guard = guard
        self.interval_seconds = interval_seconds
        self.expiration_seconds = expiration_seconds
        self._sleep = sleep
        self.running = False
        self.task: asyncio.Task[None] | None = None

    async def tick(self) -> int | None:
        """Run one sweep. Returns rows removed, or None when skipped."""
        if not self._guard.try_acquire():
            return None
        try:
            with job_context("cleanup"):
                removed = await self._ephemeral.sweep(self.expiration_seconds)
                logger.debug("Cleanup sweep removed %d entries", removed)
                return removed
        finally:
            self._guard.release()

    async def _run_loop(self) -> None:
        while self.running:
            try:
                await self.tick()
            except Exception as e:
                logger.error("Cleanup sweep failed: %s", e, exc_info=True)
            await self._sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            logger.warning("Cleanup scheduler already running")
            return
        logger.info(
            "Starting cache cleanup every %ds (expiration %ds)",
            self.interval_seconds, self.expiration_seconds,
        )
        self.running = True
        self.task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        self.running = False
        if self.task is not None:
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
            self.task = None
        logger.info("Cache cleanup stopped")
