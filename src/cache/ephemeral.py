# src/cache/ephemeral.py — v1
"""TTL-keyed ephemeral cache for whole response payloads.

The cache is optional relative to correctness: if no backend could be
opened, or a backend call fails, every operation degrades to a miss or a
no-op instead of raising.

Keys are logical request parameters. A plain string key is treated as
``{"key": key}``; the stored primary key is always the request fingerprint
of the parameter mapping, never the raw string.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Mapping

from dealcache.cache.base_ephemeral_store import BaseEphemeralStore
from dealcache.cache.fingerprint import request_fingerprint
from dealcache.config.settings import Settings

logger = logging.getLogger(__name__)

CacheKey = str | Mapping[str, Any]


def _params_for(key: CacheKey) -> Mapping[str, Any]:
    if isinstance(key, str):
        return {"key": key}
    return key


class EphemeralCache:
    """Facade over one ephemeral backend (or none).

    Args:
        backend: Opened backend, or None when caching is unavailable.
        default_ttl: TTL in seconds applied when set() gets no explicit ttl.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        backend: BaseEphemeralStore | None,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def is_available(self) -> bool:
        return self._backend is not None

    @property
    def backend_name(self) -> str:
        return "none" if self._backend is None else self._backend.name

    def _now(self) -> int:
        return int(self._clock())

    async def get(self, key: CacheKey) -> Any | None:
        """Return the cached payload, or None on miss/expiry/unavailability."""
        if self._backend is None:
            return None
        request_hash = request_fingerprint(_params_for(key))
        try:
            async with self._lock:
                data = await self._backend.get(request_hash, self._now())
        except Exception as e:
            logger.warning("Ephemeral cache read failed for %s: %s", request_hash, e)
            return None
        if data is None:
            return None
        try:
            payload = json.loads(data)
        except ValueError as e:
            logger.warning("Corrupt ephemeral cache entry %s: %s", request_hash, e)
            return None
        if payload is None:
            logger.debug("Ephemeral cache tombstone for %s", request_hash)
        return payload

    async def set(self, key: CacheKey, payload: Any, ttl: int | None = None) -> bool:
        """Store ``payload`` under ``key``. Returns False when nothing was written."""
        if self._backend is None:
            return False
        request_hash = request_fingerprint(_params_for(key))
        ttl_seconds = self._default_ttl if ttl is None else ttl
        try:
            data = json.dumps(payload, default=str)
            async with self._lock:
                await self._backend.put(request_hash, data, self._now(), ttl_seconds)
        except Exception as e:
            logger.warning("Ephemeral cache write failed for %s: %s", request_hash, e)
            return False
        logger.debug("Ephemeral cache set %s (ttl=%ds)", request_hash, ttl_seconds)
        return True

    async def delete(self, key: CacheKey) -> bool:
        """Overwrite the entry with a null payload that expires in one second."""
        return await self.set(key, None, 1)

    async def clear(self) -> int:
        """Purge every entry older than one second."""
        return await self.sweep(1)

    async def sweep(self, max_age_seconds: int) -> int:
        """Delete entries written ``max_age_seconds`` or more ago."""
        if self._backend is None:
            return 0
        cutoff = self._now() - max_age_seconds
        try:
            async with self._lock:
                removed = await self._backend.sweep(cutoff)
        except Exception as e:
            logger.warning("Ephemeral cache sweep failed: %s", e)
            return 0
        if removed:
            logger.info("Removed %d expired ephemeral cache entries", removed)
        return removed

    def stats(self) -> dict[str, Any]:
        return {
            "backend": self.backend_name,
            "available": self.is_available,
            "default_ttl_seconds": self._default_ttl,
        }

    async def close(self) -> None:
        if self._backend is None:
            return
        async with self._lock:
            await self._backend.close()
        self._backend = None


async def _open_backend(name: str, settings: Settings) -> BaseEphemeralStore:
    db_path = settings.ephemeral_db_path
    if name == "aiosqlite":
        from dealcache.cache.aiosqlite_store import AiosqliteEphemeralStore

        return await AiosqliteEphemeralStore.open(db_path)

    if name == "sqlite3":
        from dealcache.cache.sqlite_store import SqliteEphemeralStore

        return SqliteEphemeralStore(db_path)

    raise ValueError(f"Unsupported ephemeral backend: {name!r}")


async def open_ephemeral_cache(
    settings: Settings,
    clock: Callable[[], float] = time.time,
) -> EphemeralCache:
    """Open the preferred ephemeral backend, falling back to the other one.

    Returns a cache without a backend when caching is disabled or when
    neither backend could be opened.
    """
    if not settings.ephemeral_cache_enabled:
        logger.info("Ephemeral cache disabled")
        return EphemeralCache(None, settings.ephemeral_ttl_seconds, clock)

    order = ["aiosqlite", "sqlite3"]
    if not settings.ephemeral_prefer_fast_backend:
        order.reverse()

    for name in order:
        try:
            backend = await _open_backend(name, settings)
        except Exception as e:
            logger.warning("Ephemeral backend %s unavailable: %s", name, e)
            continue
        logger.info("Ephemeral cache using %s at %s", name, settings.ephemeral_db_path)
        return EphemeralCache(backend, settings.ephemeral_ttl_seconds, clock)

    logger.error("No ephemeral cache backend available; caching disabled")
    return EphemeralCache(None, settings.ephemeral_ttl_seconds, clock)
