# src/cache/aiosqlite_store.py — v1
"""Ephemeral store on aiosqlite (preferred backend).

Runs SQLite on a background thread so reads and writes never block the
event loop.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from dealcache.cache.base_ephemeral_store import EPHEMERAL_SCHEMA, BaseEphemeralStore

logger = logging.getLogger(__name__)


class AiosqliteEphemeralStore(BaseEphemeralStore):
    """aiosqlite-backed ephemeral store."""

    name = "aiosqlite"

    def __init__(self, conn: aiosqlite.Connection, db_path: Path) -> None:
        self._conn = conn
        self._db_path = db_path

    @classmethod
    async def open(cls, db_path: Path | str) -> AiosqliteEphemeralStore:
        """Open (and create if needed) the database at ``db_path``."""
        path = Path(db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        try:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.executescript(EPHEMERAL_SCHEMA)
            await conn.commit()
        except Exception:
            await conn.close()
            raise
        logger.debug("Opened aiosqlite ephemeral store at %s", path)
        return cls(conn, path)

    async def get(self, request_hash: str, now: int) -> str | None:
        async with self._conn.execute(
            "SELECT data FROM articles_cache WHERE request_hash = ? AND created_at + ttl > ?",
            (request_hash, now),
        ) as cursor:
            row = await cursor.fetchone()
        return None if row is None else row[0]

    async def put(self, request_hash: str, data: str, created_at: int, ttl: int) -> None:
        await self._conn.execute(
            """INSERT OR REPLACE INTO articles_cache
               (request_hash, data, created_at, ttl)
               VALUES (?, ?, ?, ?)""",
            (request_hash, data, created_at, ttl),
        )
        await self._conn.commit()

    async def sweep(self, cutoff: int) -> int:
        cursor = await self._conn.execute(
            "DELETE FROM articles_cache WHERE created_at <= ?", (cutoff,)
        )
        await self._conn.commit()
        return cursor.rowcount

    async def close(self) -> None:
        await self._conn.close()
