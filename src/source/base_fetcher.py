# src/source/base_fetcher.py — v1
"""Source fetcher interface and loader.

Turning listing pages into raw items is done outside this package. Any
object with an async ``fetch_page(page)`` method, or a bare async function
``fetch_page(page)``, can be plugged in by import path.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from dealcache.core.models import RawItem
from dealcache.llm.client_factory import import_object

logger = logging.getLogger(__name__)


class BaseSourceFetcher(ABC):
    """Fetches one page of raw listing items."""

    @abstractmethod
    async def fetch_page(self, page: int) -> list[RawItem]:
        """Return the raw items of page ``page`` (1-based)."""


class CallableFetcher(BaseSourceFetcher):
    """Adapts an async function to BaseSourceFetcher."""

    def __init__(self, fn: Callable[[int], Awaitable[list[Any]]]) -> None:
        self._fn = fn

    async def fetch_page(self, page: int) -> list[RawItem]:
        rows = await self._fn(page)
        return [r if isinstance(r, RawItem) else RawItem.model_validate(r) for r in rows or []]


class NullFetcher(BaseSourceFetcher):
    """Fetcher used when none is configured; every page is empty."""

    async def fetch_page(self, page: int) -> list[RawItem]:
        return []


def load_fetcher(path: str) -> BaseSourceFetcher:
    """Load a fetcher from ``package.module:attr``.

    ``attr`` may be a BaseSourceFetcher instance, a zero-argument class or
    factory returning one, or an async ``fetch_page``-style function.
    """
    target = import_object(path, sep=":")

    if isinstance(target, BaseSourceFetcher):
        return target
    if inspect.isclass(target) and issubclass(target, BaseSourceFetcher):
        return target()
    if inspect.iscoroutinefunction(target):
        return CallableFetcher(target)
    if callable(target):
        produced = target()
        if isinstance(produced, BaseSourceFetcher):
            return produced
    raise TypeError(f"{path!r} does not provide a source fetcher")
