# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


# === CATEGORIES ===


class Category(str, Enum):
    """Fixed category catalogue. OTHER is the default for anything unclassifiable."""

    ELECTRONICS = "Electronics"
    HOME_HOUSEHOLD = "Home & Household"
    FASHION = "Fashion"
    FOOD_GROCERY = "Food & Grocery"
    SPORTS_OUTDOOR = "Sports & Outdoor"
    BEAUTY_HEALTH = "Beauty & Health"
    TRAVEL = "Travel"
    ENTERTAINMENT = "Entertainment"
    KIDS_TOYS = "Kids & Toys"
    AUTOMOTIVE = "Automotive"
    SERVICES = "Services"
    OTHER = "Other Deals"


DEFAULT_CATEGORY = Category.OTHER
CATEGORY_NAMES: tuple[str, ...] = tuple(c.value for c in Category)


def resolve_category(label: str | None) -> Category | None:
    """Map a free-form label onto the catalogue (case-insensitive), or None."""
    if not label:
        return None
    wanted = label.strip().lower()
    for category in Category:
        if category.value.lower() == wanted:
            return category
    return None


# === ITEMS ===


class RawItem(BaseModel):
    """Listing record as produced by a source fetcher."""

    title: str = ""
    description: str = ""
    price: str = ""
    shipping_price: str = ""
    image: str = ""
    link: str

    @field_validator("title", "description", "price", "shipping_price", "image", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:  # noqa: N805
        return "" if v is None else v


class Item(RawItem):
    """Classified listing."""

    id: str
    category: Category = DEFAULT_CATEGORY
    created_at: datetime | None = None

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:  # noqa: N805
        if isinstance(v, Category):
            return v
        return resolve_category(v if isinstance(v, str) else None) or DEFAULT_CATEGORY


class DurableRecord(BaseModel):
    """Row of the categorized_articles table."""

    article_id: str
    title: str
    description: str = ""
    price: str = ""
    shipping_price: str = ""
    image: str = ""
    link: str
    category: str
    created_at: datetime | None = None

    @field_validator("description", "price", "shipping_price", "image", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:  # noqa: N805
        return "" if v is None else v


ItemsByCategory = dict[str, list[Item]]


# === RESULTS ===


class CategorizeResult(BaseModel):
    """Outcome of one categorization batch."""

    items: ItemsByCategory = Field(default_factory=dict)
    from_cache: bool = False
    cached_count: int = 0
    classified_count: int = 0
    persisted_count: int = 0

    @property
    def total(self) -> int:
        return sum(len(v) for v in self.items.values())


class CachedItemsStats(BaseModel):
    """Statistics attached to a cached items query."""

    total_items: int
    categories: list[str]
    categories_count: int
    days_retrieved: int
    from_date: str
    from_cache: bool = True
    from_ephemeral: bool = False
    min_required_requirement: str = "not specified"


class CachedItemsResult(BaseModel):
    """Items grouped by category plus query statistics."""

    items: ItemsByCategory = Field(default_factory=dict)
    stats: CachedItemsStats


class RefreshReport(BaseModel):
    """Summary of one refresh run (fetch, categorize, persist)."""

    status: Literal["success", "failed", "skipped"]
    error: str | None = None
    pages_fetched: int = 0
    total_fetched: int = 0
    total_categorized: int = 0
    categories: list[str] = Field(default_factory=list)
    batches_processed: int = 0
    from_cache_count: int = 0
    newly_persisted_count: int = 0
    percent_from_cache: int = 0
    duration_seconds: float = 0.0
    items: ItemsByCategory = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == "success"


def group_by_category(items: list[Item]) -> ItemsByCategory:
    """Group items by category label, preserving input order."""
    grouped: ItemsByCategory = {}
    for item in items:
        grouped.setdefault(item.category.value, []).append(item)
    return grouped
