# src/categorize/strategies.py — v1
"""Classification strategies.

KeywordStrategy is local and never fails. LLMStrategy asks a hosted model
and raises ClassifierFailure on any error or out-of-catalogue answer.
FallbackStrategy tries a primary strategy and falls back to a secondary one
on ClassifierFailure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from dealcache.categorize.categories import best_keyword_category, list_categories
from dealcache.core.errors import ClassifierFailure, InvalidClassifierLabel
from dealcache.core.models import Category, RawItem, resolve_category
from dealcache.llm.base_client import BaseLLMClient
from dealcache.llm.models import Message
from dealcache.llm.retry import LLMRetryExhausted, RetryConfig, with_retry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a deal categorization assistant. "
    "Respond only with the exact category name, nothing else."
)


def build_prompt(item: RawItem) -> str:
    """User prompt listing the catalogue and the item fields."""
    return (
        "Categorize this deal into exactly one of these categories: "
        f"{', '.join(list_categories())}.\n\n"
        f"Deal title: {item.title}\n"
        f"Deal description: {item.description}\n"
        f"Price: {item.price}\n\n"
        "Return only the category name, nothing else."
    )


class ClassifierStrategy(ABC):
    """Maps one item to one category."""

    name: str = "base"

    @abstractmethod
    async def classify(self, item: RawItem) -> Category:
        """Return the item's category.

        Raises:
            ClassifierFailure: The strategy could not produce a valid label.
        """


class KeywordStrategy(ClassifierStrategy):
    """Keyword scoring over title and description."""

    name = "keyword"

    async def classify(self, item: RawItem) -> Category:
        return best_keyword_category(item.title, item.description)


class LLMStrategy(ClassifierStrategy):
    """Hosted chat-completion classifier."""

    name = "llm"

    def __init__(
        self,
        client: BaseLLMClient,
        temperature: float = 0.3,
        max_tokens: int = 20,
        retry_configs: dict[str, RetryConfig] | None = None,
    ) -> None:
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._retry_configs = retry_configs

    async def classify(self, item: RawItem) -> Category:
        try:
            response = await with_retry(
                self._client.complete,
                [Message(role="user", content=build_prompt(item))],
                system=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                operation="classify",
                retry_configs=self._retry_configs,
            )
        except LLMRetryExhausted as e:
            raise ClassifierFailure(str(e)) from e

        label = response.content.strip()
        category = resolve_category(label)
        if category is None:
            raise InvalidClassifierLabel(label)
        return category

    async def close(self) -> None:
        await self._client.close()


class FallbackStrategy(ClassifierStrategy):
    """Try ``primary``; on ClassifierFailure use ``fallback``."""

    name = "fallback"

    def __init__(self, primary: ClassifierStrategy, fallback: ClassifierStrategy) -> None:
        self.primary = primary
        self.fallback = fallback

    async def classify(self, item: RawItem) -> Category:
        try:
            return await self.primary.classify(item)
        except ClassifierFailure as e:
            logger.warning(
                "%s classifier failed for %r, using %s: %s",
                self.primary.name, item.title[:60], self.fallback.name, e,
            )
            return await self.fallback.classify(item)
