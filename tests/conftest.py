# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings, sample raw items, a mock LLM client and an in-memory
PostgREST fake served through httpx.MockTransport. No network access.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from dealcache.cache.durable_store import DurableStore
from dealcache.cache.ephemeral import EphemeralCache
from dealcache.cache.sqlite_store import SqliteEphemeralStore
from dealcache.config.settings import Settings
from dealcache.core.models import RawItem
from dealcache.llm.models import LLMResponse

SUPABASE_URL = "https://test-project.supabase.co"
SERVICE_KEY = "service-role-key"

_RESERVED_PARAMS = {"select", "order", "limit", "offset", "on_conflict"}
_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"')


class FakePostgrest:
    """Minimal in-memory PostgREST: eq/gt/gte/lt/lte/in filters, order, limit,
    offset, upsert on conflict, delete and exact counts."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_when: Callable[[httpx.Request], bool] | None = None

    # --- helpers for tests ---

    def rows(self, table: str = "categorized_articles") -> list[dict[str, Any]]:
        return list(self.tables.get(table, {}).values())

    def seed(self, rows: list[dict[str, Any]], table: str = "categorized_articles") -> None:
        store = self.tables.setdefault(table, {})
        for row in rows:
            row = dict(row)
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            store[row["article_id"]] = row

    def requests_for(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]

    # --- request handling ---

    @staticmethod
    def _matches(row: dict[str, Any], filters: list[tuple[str, str]]) -> bool:
        for column, expr in filters:
            op, _, value = expr.partition(".")
            current = row.get(column)
            if op == "in":
                wanted = {m.replace('\\"', '"').replace("\\\\", "\\") for m in _QUOTED.findall(value)}
                if current not in wanted:
                    return False
            elif op == "eq":
                if str(current) != value:
                    return False
            elif op in ("gt", "gte", "lt", "lte"):
                if current is None:
                    return False
                current = str(current)
                if op == "gt" and not current > value:
                    return False
                if op == "gte" and not current >= value:
                    return False
                if op == "lt" and not current < value:
                    return False
                if op == "lte" and not current <= value:
                    return False
            else:
                raise AssertionError(f"unsupported operator {op!r}")
        return True

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_when is not None and self.fail_when(request):
            return httpx.Response(500, text="internal error")

        table = request.url.path.rsplit("/", 1)[-1]
        rows = self.tables.setdefault(table, {})
        params = list(request.url.params.multi_items())
        query = dict(params)
        filters = [(k, v) for k, v in params if k not in _RESERVED_PARAMS]

        if request.method in ("GET", "HEAD"):
            selected = [dict(r) for r in rows.values() if self._matches(r, filters)]
            if "order" in query:
                column, _, direction = query["order"].partition(".")
                selected.sort(key=lambda r: str(r.get(column, "")), reverse=direction == "desc")
            offset = int(query.get("offset", 0))
            selected = selected[offset:]
            if "limit" in query:
                selected = selected[: int(query["limit"])]
            if request.method == "HEAD":
                total = len([r for r in rows.values() if self._matches(r, filters)])
                return httpx.Response(200, headers={"content-range": f"*/{total}"})
            return httpx.Response(200, json=selected)

        if request.method == "POST":
            conflict = query.get("on_conflict", "article_id")
            for row in json.loads(request.content):
                merged = {**rows.get(row[conflict], {}), **row}
                merged.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                rows[row[conflict]] = merged
            return httpx.Response(201)

        if request.method == "DELETE":
            doomed = [k for k, r in rows.items() if self._matches(r, filters)]
            for key in doomed:
                del rows[key]
            return httpx.Response(204, headers={"content-range": f"*/{len(doomed)}"})

        return httpx.Response(405)


# === FIXTURES: Settings ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Fully configured settings pointing at temp dirs and a fake store."""
    return Settings(
        _env_file=None,
        supabase_url=SUPABASE_URL,
        supabase_service_key=SERVICE_KEY,
        openai_api_key="sk-test",
        ephemeral_cache_dir=tmp_path / "cache",
        inter_batch_pause_seconds=0.0,
    )


@pytest.fixture
def unconfigured_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_service_key="",
        openai_api_key="",
        ephemeral_cache_dir=tmp_path / "cache",
    )


# === FIXTURES: Durable store ===


@pytest.fixture
def fake_postgrest() -> FakePostgrest:
    return FakePostgrest()


@pytest_asyncio.fixture
async def durable(settings, fake_postgrest):
    store = DurableStore(settings, transport=httpx.MockTransport(fake_postgrest.handler))
    yield store
    await store.close()


# === FIXTURES: Ephemeral cache ===


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def ephemeral(tmp_path, clock):
    cache = EphemeralCache(SqliteEphemeralStore(tmp_path / "ephemeral.db"), 3600, clock)
    yield cache
    await cache.close()


# === FIXTURES: Sample data ===


@pytest.fixture
def phone_case() -> RawItem:
    return RawItem(
        title="iPhone 15 case",
        description="silicone cover",
        price="20 zł",
        link="https://www.pepper.pl/promocje/iphone-15-case-1",
    )


@pytest.fixture
def sample_raw_items() -> list[RawItem]:
    """Five raw items with distinct links spread over several categories."""
    return [
        RawItem(
            title="Samsung Galaxy smartphone",
            description="5G phone with wireless charging",
            price="1999 zł",
            link="https://www.pepper.pl/promocje/galaxy-1",
        ),
        RawItem(
            title="Garden sofa",
            description="Patio furniture set",
            price="899 zł",
            link="https://www.pepper.pl/promocje/sofa-2",
        ),
        RawItem(
            title="Running sneakers",
            description="Lightweight shoes",
            price="249 zł",
            link="https://www.pepper.pl/promocje/sneakers-3",
        ),
        RawItem(
            title="Organic coffee beans",
            description="1kg arabica",
            price="79 zł",
            link="https://www.pepper.pl/promocje/coffee-4",
        ),
        RawItem(
            title="Qwxy zzkt",
            description="",
            price="1 zł",
            link="https://www.pepper.pl/promocje/unknown-5",
        ),
    ]


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm_client():
    """Mock BaseLLMClient answering with a fixed category name."""
    client = AsyncMock()
    client.complete.return_value = LLMResponse(
        content="Electronics",
        input_tokens=80,
        output_tokens=2,
        model="gpt-3.5-turbo",
        provider="openai",
        latency_ms=120,
    )
    client.provider_name = "openai"
    return client
