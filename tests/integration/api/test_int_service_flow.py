# tests/integration/api/test_int_service_flow.py — v1
"""End-to-end flows through the service context.

Covers: api/service.py, cache/orchestrator.py, cache/ephemeral.py,
categorize/pipeline.py, scheduler/refresh.py over real disk-backed
ephemeral storage and the HTTP durable store.
"""

from __future__ import annotations

import pytest


class TestRefreshThenRead:

    @pytest.mark.asyncio
    async def test_refresh_persists_then_cached_read(self, live_service, fake_postgrest):
        report = await live_service.refresh_now()
        assert report.status == "success"
        assert report.pages_fetched == 3
        assert report.total_fetched == 6
        assert report.newly_persisted_count == 6
        assert report.percent_from_cache == 0
        assert len(fake_postgrest.rows()) == 6

        result = await live_service.get_cached_items(days=1, limit=50)
        assert result.stats.total_items == 6
        assert result.stats.from_ephemeral is False
        assert len(result.items["Electronics"]) == 2
        assert result.items["Travel"][0].title == "Flights to Lisbon"

    @pytest.mark.asyncio
    async def test_repeat_read_served_by_ephemeral_layer(self, live_service, fake_postgrest):
        await live_service.refresh_now()
        first = await live_service.get_cached_items(days=1, limit=50)
        gets_before = len(fake_postgrest.requests_for("GET"))

        second = await live_service.get_cached_items(days=1, limit=50)
        assert second.stats.from_ephemeral is True
        assert second.stats.total_items == first.stats.total_items
        assert len(fake_postgrest.requests_for("GET")) == gets_before

        # different parameters are a different cache key
        await live_service.get_cached_items(days=2, limit=50)
        assert len(fake_postgrest.requests_for("GET")) == gets_before + 1

    @pytest.mark.asyncio
    async def test_second_refresh_reuses_durable_classifications(self, live_service, fake_postgrest):
        await live_service.refresh_now()
        posts = len(fake_postgrest.requests_for("POST"))

        report = await live_service.refresh_now()
        assert report.from_cache_count == 6
        assert report.newly_persisted_count == 0
        assert report.percent_from_cache == 100
        assert len(fake_postgrest.requests_for("POST")) == posts

    @pytest.mark.asyncio
    async def test_partial_outage_still_succeeds(self, live_service, listing_site):
        listing_site.down.add(2)
        report = await live_service.refresh_now()
        assert report.status == "success"
        assert report.pages_fetched == 2
        assert report.total_fetched == 4


class TestFallbackRefresh:

    @pytest.mark.asyncio
    async def test_empty_cache_refreshes_once(self, live_service, listing_site):
        result = await live_service.get_items_with_fallback(days=1, min_required=5)
        assert sorted(listing_site.requested) == [1, 2, 3]
        assert result.stats.total_items == 6
        assert result.stats.min_required_requirement == "6/5"

        listing_site.requested.clear()
        again = await live_service.get_items_with_fallback(days=1, min_required=5)
        assert listing_site.requested == []
        assert again.stats.total_items == 6

    @pytest.mark.asyncio
    async def test_stale_ephemeral_entry_bypassed_after_refresh(self, live_service, fake_postgrest):
        fake_postgrest.seed([
            {"article_id": "seed", "title": "Smart TV", "link": "https://x/tv", "category": "Electronics"}
        ])
        sparse = await live_service.get_cached_items(days=1, min_required=3)
        assert sparse.stats.total_items == 1

        result = await live_service.get_items_with_fallback(days=1, min_required=3)
        assert result.stats.total_items == 7
        assert result.stats.from_ephemeral is False


class TestMaintenance:

    @pytest.mark.asyncio
    async def test_cleanup_tick_keeps_fresh_entries(self, live_service):
        await live_service.refresh_now()
        await live_service.get_cached_items(days=1)
        assert live_service.ephemeral.backend_name == "aiosqlite"

        # entries are younger than the expiration window
        assert await live_service.cleanup.tick() == 0
        assert live_service.cleanup_guard.runs_finished == 1

    @pytest.mark.asyncio
    async def test_purge_old_durable_records(self, live_service, fake_postgrest):
        fake_postgrest.seed([
            {"article_id": "old", "title": "Old deal", "link": "https://x/old",
             "category": "Other Deals", "created_at": "2020-01-01T00:00:00+00:00"},
            {"article_id": "new", "title": "New deal", "link": "https://x/new",
             "category": "Other Deals"},
        ])
        removed = await live_service.durable.delete_older_than(30)
        assert removed == 1
        assert [r["article_id"] for r in fake_postgrest.rows()] == ["new"]
