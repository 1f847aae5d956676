# src/cache/sqlite_store.py — v2
"""SQLite-based ephemeral store (portable fallback backend).

Uses stdlib sqlite3, available wherever Python is. Calls run on the event
loop thread; the EphemeralCache facade serializes access.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from dealcache.cache.base_ephemeral_store import EPHEMERAL_SCHEMA, BaseEphemeralStore

logger = logging.getLogger(__name__)


class SqliteEphemeralStore(BaseEphemeralStore):
    """sqlite3-backed ephemeral store."""

    name = "sqlite3"

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(EPHEMERAL_SCHEMA)
        self._conn.commit()

    async def get(self, request_hash: str, now: int) -> str | None:
        cursor = self._conn.execute(
            "SELECT data FROM articles_cache WHERE request_hash = ? AND created_at + ttl > ?",
            (request_hash, now),
        )
        row = cursor.fetchone()
        return None if row is None else row[0]

    async def put(self, request_hash: str, data: str, created_at: int, ttl: int) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO articles_cache
               (request_hash, data, created_at, ttl)
               VALUES (?, ?, ?, ?)""",
            (request_hash, data, created_at, ttl),
        )
        self._conn.commit()

    async def sweep(self, cutoff: int) -> int:
        cursor = self._conn.execute(
            "DELETE FROM articles_cache WHERE created_at <= ?", (cutoff,)
        )
        self._conn.commit()
        return cursor.rowcount

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
