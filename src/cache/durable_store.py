# src/cache/durable_store.py — v1
"""Durable cache store client for a PostgREST-compatible HTTP API.

The store is a remote table of categorized items queried and written in
bounded batches: membership lookups are split into small sub-batches to
stay under query-string limits, and upserts are batched to stay under
payload-size limits.

Filters are passed as a mapping of column to either a raw PostgREST
expression (``"gte.2024-01-01T00:00:00+00:00"``) or a collection of values,
which is rendered as a membership filter (``in.("a","b")``).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

import httpx

from dealcache.cache.fingerprint import item_id_for
from dealcache.config.settings import Settings
from dealcache.core.errors import (
    DurableStoreError,
    NotConfiguredError,
    PersistBatchFailure,
    QueryBatchFailure,
)
from dealcache.core.models import Category, DurableRecord, Item, RawItem

logger = logging.getLogger(__name__)

Filters = Mapping[str, Any]


def _quote(value: Any) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def in_filter(values: Iterable[Any]) -> str:
    """Render a PostgREST membership expression."""
    return "in.(" + ",".join(_quote(v) for v in values) + ")"


def _is_membership(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _render_filters(filters: Filters | None) -> list[tuple[str, str]]:
    params: list[tuple[str, str]] = []
    for column, value in (filters or {}).items():
        if _is_membership(value):
            params.append((column, in_filter(value)))
        else:
            params.append((column, str(value)))
    return params


def _has_empty_membership(filters: Filters | None) -> bool:
    return any(_is_membership(v) and not v for v in (filters or {}).values())


def _parse_content_range(header: str | None) -> int:
    # "0-24/3573" or "*/0"
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


def to_record(
    item: RawItem | Item,
    category: Category | str,
    written_at: datetime | None = None,
) -> dict[str, Any]:
    """Convert an item and its category into a durable row.

    ``created_at`` is always sent so that an upsert over an existing row
    moves its write timestamp forward.
    """
    item_id = getattr(item, "id", None) or item_id_for(item.link)
    label = category.value if isinstance(category, Category) else category
    row = DurableRecord(
        article_id=item_id,
        title=item.title,
        description=item.description,
        price=item.price,
        shipping_price=item.shipping_price,
        image=item.image,
        link=item.link,
        category=label,
    ).model_dump(mode="json", exclude_none=True)
    row["created_at"] = (written_at or datetime.now(timezone.utc)).isoformat()
    return row


def to_item(record: Mapping[str, Any]) -> Item:
    """Convert a durable row back into an Item."""
    row = DurableRecord.model_validate(record)
    return Item(
        id=row.article_id,
        title=row.title,
        description=row.description,
        price=row.price,
        shipping_price=row.shipping_price,
        image=row.image,
        link=row.link,
        category=row.category,
        created_at=row.created_at,
    )


def _chunks(values: list[Any], size: int) -> Iterable[list[Any]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


class DurableStore:
    """Async client for the durable record table.

    Args:
        settings: Application settings (credentials, batch sizes, timeout).
        client: Optional pre-built httpx client. When omitted, one is created
            lazily on first use and owned (closed) by this store.
        transport: Transport for the owned client (e.g. httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._transport = transport
        self._owns_client = client is None
        self.table = settings.durable_table
        self.lookup_batch_size = settings.durable_lookup_batch_size
        self.upsert_batch_size = settings.durable_upsert_batch_size

    @property
    def configured(self) -> bool:
        return self._settings.durable_configured

    def _require_configured(self) -> None:
        if not self.configured:
            raise NotConfiguredError(
                "Durable store", "SUPABASE_URL and SUPABASE_SERVICE_KEY are required"
            )

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            key = self._settings.supabase_service_key
            self._client = httpx.AsyncClient(
                base_url=self._settings.supabase_url.rstrip("/") + "/rest/v1",
                headers={
                    "apikey": key,
                    "Authorization": f"Bearer {key}",
                    "Content-Type": "application/json",
                },
                timeout=self._settings.durable_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _send(
        self,
        method: str,
        table: str,
        operation: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http().request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise DurableStoreError(operation, table, str(e) or type(e).__name__) from e
        if response.status_code >= 400:
            raise DurableStoreError(
                operation, table, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        return response

    # --- Reads ---

    async def query(
        self,
        table: str | None = None,
        filters: Filters | None = None,
        order: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        select: str = "*",
    ) -> list[dict[str, Any]]:
        """Select rows. An empty membership filter returns [] without a request.

        Raises:
            NotConfiguredError: Credentials are absent.
            DurableStoreError: The request failed.
        """
        self._require_configured()
        table = table or self.table
        if _has_empty_membership(filters):
            return []

        params = [("select", select), *_render_filters(filters)]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset is not None:
            params.append(("offset", str(offset)))

        response = await self._send("GET", table, "query", params=params)
        rows = response.json()
        return rows if isinstance(rows, list) else []

    async def query_in(
        self,
        column: str,
        values: Iterable[Any],
        table: str | None = None,
        batch_size: int | None = None,
        select: str = "*",
    ) -> list[dict[str, Any]]:
        """Membership lookup split into sub-batches.

        A failing sub-batch is logged and contributes no rows; callers treat
        its candidates as not found.
        """
        self._require_configured()
        table = table or self.table
        unique = list(dict.fromkeys(values))
        if not unique:
            return []

        size = batch_size or self.lookup_batch_size
        rows: list[dict[str, Any]] = []
        for index, chunk in enumerate(_chunks(unique, size)):
            try:
                rows.extend(
                    await self.query(table, filters={column: chunk}, select=select)
                )
            except DurableStoreError as e:
                failure = QueryBatchFailure("query", table, str(e))
                logger.warning(
                    "Lookup sub-batch %d (%d keys) failed, treating as not found: %s",
                    index, len(chunk), failure,
                )
        return rows

    async def count(self, table: str | None = None, filters: Filters | None = None) -> int:
        """Exact row count for the optional filter."""
        self._require_configured()
        table = table or self.table
        if _has_empty_membership(filters):
            return 0
        response = await self._send(
            "HEAD",
            table,
            "count",
            params=[("select", "*"), *_render_filters(filters)],
            headers={"Prefer": "count=exact"},
        )
        return _parse_content_range(response.headers.get("content-range"))

    # --- Writes ---

    async def _post(self, table: str, rows: list[dict[str, Any]], conflict_key: str) -> None:
        await self._send(
            "POST",
            table,
            "upsert",
            params=[("on_conflict", conflict_key)],
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def upsert(
        self,
        records: list[dict[str, Any]],
        table: str | None = None,
        conflict_key: str = "article_id",
        batch_size: int | None = None,
    ) -> int:
        """Insert-or-update rows in batches. Returns the number persisted.

        A failed batch is retried record by record; records that still fail
        are logged and left out of the returned count.
        """
        self._require_configured()
        table = table or self.table
        if not records:
            return 0

        size = batch_size or self.upsert_batch_size
        persisted = 0
        for index, batch in enumerate(_chunks(records, size)):
            try:
                await self._post(table, batch, conflict_key)
                persisted += len(batch)
                continue
            except DurableStoreError as e:
                failure = PersistBatchFailure("upsert", table, str(e))
                logger.warning(
                    "Upsert batch %d (%d rows) failed, retrying per record: %s",
                    index, len(batch), failure,
                )

            for row in batch:
                try:
                    await self._post(table, [row], conflict_key)
                    persisted += 1
                except DurableStoreError as e:
                    logger.error(
                        "Failed to persist %s=%s: %s", conflict_key, row.get(conflict_key), e
                    )

        logger.info("Persisted %d/%d rows into %s", persisted, len(records), table)
        return persisted

    async def delete(self, filters: Filters, table: str | None = None) -> int:
        """Delete matching rows. Returns the count reported by the store."""
        self._require_configured()
        table = table or self.table
        if _has_empty_membership(filters):
            return 0
        response = await self._send(
            "DELETE",
            table,
            "delete",
            params=_render_filters(filters),
            headers={"Prefer": "return=minimal,count=exact"},
        )
        return _parse_content_range(response.headers.get("content-range"))

    async def delete_older_than(self, days: int, table: str | None = None) -> int:
        """Durable retention: drop rows created more than ``days`` ago."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        removed = await self.delete({"created_at": f"lt.{cutoff.isoformat()}"}, table)
        logger.info("Purged %d durable rows older than %d days", removed, days)
        return removed

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
