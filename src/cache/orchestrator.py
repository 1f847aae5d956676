# src/cache/orchestrator.py — v1
"""Cache orchestrator: ephemeral layer in front of the durable store.

Read path for cached items:
  1. ephemeral lookup keyed on ``{"days", "limit"}`` (unless skipped)
  2. durable query for the recency window, newest first, capped at limit
  3. write-through of non-empty results into the ephemeral layer

Deciding what to do when fewer than ``min_required`` items come back is the
caller's job (see ServiceContext.get_items_with_fallback).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from dealcache.cache.durable_store import DurableStore, to_item
from dealcache.cache.ephemeral import EphemeralCache
from dealcache.config.settings import Settings
from dealcache.core.errors import LimitExceededError
from dealcache.core.models import CachedItemsResult, CachedItemsStats, group_by_category

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheOrchestrator:
    """Owns read/write sequencing across the ephemeral and durable layers."""

    def __init__(
        self,
        settings: Settings,
        durable: DurableStore,
        ephemeral: EphemeralCache,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._durable = durable
        self._ephemeral = ephemeral
        self._now = now

    async def get_cached_items(
        self,
        days: int | None = None,
        limit: int | None = None,
        skip_ephemeral: bool = False,
        min_required: int | None = None,
    ) -> CachedItemsResult:
        """Return recently categorized items grouped by category.

        Raises:
            LimitExceededError: ``limit`` is above the configured ceiling.
            NotConfiguredError: The durable store has no credentials.
            DurableStoreError: The durable query failed.
        """
        days = self._settings.cache_days_default if days is None else days
        limit = self._settings.cache_limit_default if limit is None else limit
        ceiling = self._settings.cache_limit_ceiling
        if limit > ceiling:
            raise LimitExceededError("limit", limit, ceiling)
        if limit <= 0 or days <= 0:
            raise ValueError("days and limit must be positive")

        params = {"days": days, "limit": limit}

        if not skip_ephemeral:
            cached = await self._ephemeral.get(params)
            if cached is not None:
                try:
                    result = CachedItemsResult.model_validate(cached)
                except ValueError as e:
                    logger.warning("Discarding malformed ephemeral payload: %s", e)
                else:
                    result.stats.from_ephemeral = True
                    result.stats.min_required_requirement = _requirement(
                        result.stats.total_items, min_required
                    )
                    logger.debug("Ephemeral hit for %s", params)
                    return result

        since = self._now() - timedelta(days=days)
        rows = await self._durable.query(
            filters={"created_at": f"gte.{since.isoformat()}"},
            order="created_at.desc",
            limit=limit,
        )
        items = [to_item(row) for row in rows]
        grouped = group_by_category(items)

        result = CachedItemsResult(
            items=grouped,
            stats=CachedItemsStats(
                total_items=len(items),
                categories=list(grouped),
                categories_count=len(grouped),
                days_retrieved=days,
                from_date=since.isoformat(),
                min_required_requirement=_requirement(len(items), min_required),
            ),
        )
        logger.info(
            "Loaded %d cached items in %d categories (days=%d, limit=%d)",
            len(items), len(grouped), days, limit,
        )

        if items and not skip_ephemeral:
            stored = await self._ephemeral.set(
                params,
                result.model_dump(mode="json"),
                self._settings.ephemeral_ttl_seconds,
            )
            if not stored:
                logger.debug("Ephemeral write-through skipped for %s", params)

        return result


def _requirement(total: int, min_required: int | None) -> str:
    if not min_required:
        return "not specified"
    return f"{total}/{min_required}"
