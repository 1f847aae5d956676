# src/categorize/pipeline.py — v2
"""Batch categorization pipeline.

Per batch, in this order and never reversed:
  1. derive ids and look them up in the durable store (sub-batched)
  2. classify the items that were not found
  3. persist the new classifications
  4. merge cached and new items into one category map

Lookup failures fail open: unknown items are re-classified rather than
dropped. Persistence failures only lower the persisted count.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from dealcache.cache.durable_store import DurableStore, to_item, to_record
from dealcache.cache.fingerprint import item_id_for
from dealcache.categorize.strategies import ClassifierStrategy, KeywordStrategy
from dealcache.core.errors import ClassifierFailure, DurableStoreError
from dealcache.core.models import Category, CategorizeResult, Item, RawItem, group_by_category

logger = logging.getLogger(__name__)


def _as_raw(item: RawItem | Mapping[str, Any]) -> RawItem:
    # Item and other subclasses carry id/category, which are recomputed here.
    if type(item) is RawItem:
        return item
    if isinstance(item, RawItem):
        item = item.model_dump(include=set(RawItem.model_fields))
    return RawItem.model_validate(item)


class CategorizationPipeline:
    """Partition, classify, persist and merge one batch of items.

    Args:
        durable: Durable store client. When it is not configured every item
            is classified and nothing is persisted.
        classifier: Strategy used when ``use_classifier`` is requested
            (typically LLM with keyword fallback). None means keyword only.
        keyword: Local strategy used otherwise and as the last resort.
    """

    def __init__(
        self,
        durable: DurableStore,
        classifier: ClassifierStrategy | None = None,
        keyword: ClassifierStrategy | None = None,
    ) -> None:
        self._durable = durable
        self._classifier = classifier
        self._keyword = keyword or KeywordStrategy()

    async def categorize_items(
        self,
        items: Iterable[RawItem | Mapping[str, Any]],
        use_classifier: bool = True,
        persist: bool = True,
    ) -> CategorizeResult:
        """Categorize a batch, reusing durable classifications where they exist."""
        candidates: dict[str, RawItem] = {}
        for raw in map(_as_raw, items):
            candidates.setdefault(item_id_for(raw.link), raw)

        if not candidates:
            return CategorizeResult()

        cached = await self._lookup(list(candidates))
        uncached = [(item_id, raw) for item_id, raw in candidates.items() if item_id not in cached]
        logger.info(
            "Batch of %d items: %d cached, %d to classify",
            len(candidates), len(cached), len(uncached),
        )

        if not uncached:
            return CategorizeResult(
                items=group_by_category(list(cached.values())),
                from_cache=True,
                cached_count=len(cached),
            )

        strategy = self._classifier if use_classifier and self._classifier else self._keyword
        classified: list[Item] = []
        for item_id, raw in uncached:
            classified.append(
                Item(id=item_id, category=await self._classify(strategy, raw), **raw.model_dump())
            )

        persisted = await self._persist(classified) if persist else 0

        merged = {
            label: group
            for label, group in group_by_category([*cached.values(), *classified]).items()
            if group
        }
        return CategorizeResult(
            items=merged,
            from_cache=False,
            cached_count=len(cached),
            classified_count=len(classified),
            persisted_count=persisted,
        )

    async def _lookup(self, ids: list[str]) -> dict[str, Item]:
        if not self._durable.configured:
            logger.debug("Durable store not configured; treating %d items as new", len(ids))
            return {}
        wanted = set(ids)
        rows = await self._durable.query_in("article_id", ids)
        found: dict[str, Item] = {}
        for row in rows:
            if row.get("article_id") in wanted:
                item = to_item(row)
                found[item.id] = item
        return found

    async def _classify(self, strategy: ClassifierStrategy, raw: RawItem) -> Category:
        try:
            return await strategy.classify(raw)
        except ClassifierFailure as e:
            logger.warning("Classifier failed for %r, using keywords: %s", raw.title[:60], e)
            return await self._keyword.classify(raw)

    async def _persist(self, items: list[Item]) -> int:
        if not self._durable.configured:
            logger.debug("Durable store not configured; skipping persistence")
            return 0
        records = [to_record(item, item.category) for item in items]
        try:
            return await self._durable.upsert(records)
        except DurableStoreError as e:
            logger.error("Persisting %d classified items failed: %s", len(records), e)
            return 0
