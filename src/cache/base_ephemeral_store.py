# src/cache/base_ephemeral_store.py — v1
"""Abstract ephemeral store interface.

Backends persist rows of ``(request_hash, data, created_at, ttl)`` and know
nothing about payload shapes or clocks; the EphemeralCache facade owns both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

EPHEMERAL_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles_cache (
    request_hash TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    ttl INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_articles_cache_created_at ON articles_cache(created_at);
"""


class BaseEphemeralStore(ABC):
    """Unified interface for ephemeral storage backends."""

    name: str = "base"

    @abstractmethod
    async def get(self, request_hash: str, now: int) -> str | None:
        """Return the serialized payload if its row is still valid at ``now``."""

    @abstractmethod
    async def put(self, request_hash: str, data: str, created_at: int, ttl: int) -> None:
        """Insert or replace a row."""

    @abstractmethod
    async def sweep(self, cutoff: int) -> int:
        """Delete rows written at or before ``cutoff``. Returns rows removed."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
