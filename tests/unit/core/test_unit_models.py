# tests/unit/core/test_unit_models.py — v2
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

import pytest

from dealcache.core.errors import (
    ClassifierFailure,
    InvalidClassifierLabel,
    LimitExceededError,
    NotConfiguredError,
    PersistBatchFailure,
)
from dealcache.core.models import (
    CATEGORY_NAMES,
    DEFAULT_CATEGORY,
    CategorizeResult,
    Category,
    Item,
    RawItem,
    group_by_category,
    resolve_category,
)


class TestCategory:
    def test_twelve_categories(self):
        assert len(CATEGORY_NAMES) == 12
        assert DEFAULT_CATEGORY.value == "Other Deals"

    def test_resolve_case_insensitive(self):
        assert resolve_category("electronics") is Category.ELECTRONICS
        assert resolve_category("  Home & Household\n") is Category.HOME_HOUSEHOLD

    def test_resolve_unknown(self):
        assert resolve_category("Gadgets") is None
        assert resolve_category("") is None
        assert resolve_category(None) is None


class TestItem:
    def test_raw_item_none_fields(self):
        raw = RawItem(title=None, description=None, link="https://x.y/1")
        assert raw.title == ""
        assert raw.description == ""

    def test_item_requires_link(self):
        with pytest.raises(ValueError):
            RawItem(title="no link")

    def test_item_unknown_category_defaults(self):
        item = Item(id="a", link="l", category="Not a category")
        assert item.category is Category.OTHER

    def test_item_null_category_defaults(self):
        assert Item(id="a", link="l", category=None).category is Category.OTHER

    def test_group_by_category_preserves_order(self):
        items = [
            Item(id="1", link="1", category="Fashion"),
            Item(id="2", link="2", category="Travel"),
            Item(id="3", link="3", category="Fashion"),
        ]
        grouped = group_by_category(items)
        assert list(grouped) == ["Fashion", "Travel"]
        assert [i.id for i in grouped["Fashion"]] == ["1", "3"]

    def test_categorize_result_total(self):
        result = CategorizeResult(items=group_by_category([
            Item(id="1", link="1"), Item(id="2", link="2", category="Travel"),
        ]))
        assert result.total == 2


class TestErrors:
    def test_not_configured_message(self):
        assert str(NotConfiguredError("Durable store")) == "Durable store is not configured"

    def test_limit_exceeded_is_value_error(self):
        err = LimitExceededError("limit", 2000, 1000)
        assert isinstance(err, ValueError)
        assert "less than or equal to 1000" in str(err)

    def test_invalid_label_is_classifier_failure(self):
        err = InvalidClassifierLabel("Gadgets")
        assert isinstance(err, ClassifierFailure)
        assert err.label == "Gadgets"

    def test_persist_failure_carries_operation(self):
        err = PersistBatchFailure("upsert", "categorized_articles", "HTTP 500")
        assert err.operation == "upsert"
        assert "categorized_articles" in str(err)
