# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

The service is wired the way ``open_service`` wires it in production: the
ephemeral cache is opened from settings on disk, the durable store talks
HTTP (served by the in-memory PostgREST fake) and the source is a small
fake listing site. No network access, no containers.
"""

from __future__ import annotations

import logging

import httpx
import pytest
import pytest_asyncio

from dealcache.api.service import open_service
from dealcache.cache.durable_store import DurableStore
from dealcache.core.models import RawItem
from dealcache.logging.logger import ROOT_LOGGER
from dealcache.source.base_fetcher import BaseSourceFetcher

LISTINGS = {
    1: [
        ("Xiaomi smartphone 256GB", "AMOLED phone", "1299 zł"),
        ("Wireless headphones", "bluetooth ANC", "349 zł"),
        ("Kitchen knife set", "stainless steel for the home", "119 zł"),
    ],
    2: [
        ("Trail running shoes", "sport sneakers", "299 zł"),
        ("Lego city set", "toys for kids", "159 zł"),
    ],
    3: [
        ("Flights to Lisbon", "travel deal, hotel included", "899 zł"),
    ],
}


class FakeListingSite(BaseSourceFetcher):
    """Serves fixed pages of listings; unknown pages are empty."""

    def __init__(self, listings: dict[int, list[tuple[str, str, str]]] | None = None) -> None:
        self.listings = LISTINGS if listings is None else listings
        self.requested: list[int] = []
        self.down: set[int] = set()

    async def fetch_page(self, page: int) -> list[RawItem]:
        self.requested.append(page)
        if page in self.down:
            raise httpx.ConnectError(f"page {page} unreachable")
        return [
            RawItem(
                title=title,
                description=description,
                price=price,
                link=f"https://www.pepper.pl/promocje/p{page}-{index}",
            )
            for index, (title, description, price) in enumerate(self.listings.get(page, []))
        ]


@pytest.fixture
def listing_site() -> FakeListingSite:
    return FakeListingSite()


@pytest.fixture
def service_settings(settings):
    return settings.model_copy(
        update={"classifier_enabled": False, "refresh_max_pages": 3, "fallback_pages_default": 3}
    )


@pytest_asyncio.fixture
async def live_service(service_settings, fake_postgrest, listing_site):
    durable = DurableStore(service_settings, transport=httpx.MockTransport(fake_postgrest.handler))
    service = await open_service(service_settings, fetcher=listing_site, durable=durable)
    yield service
    await service.close()


@pytest.fixture
def restore_logging():
    root = logging.getLogger(ROOT_LOGGER)
    level, handlers = root.level, list(root.handlers)
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
