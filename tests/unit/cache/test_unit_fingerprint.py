# tests/unit/cache/test_unit_fingerprint.py — v3
"""Tests for cache/fingerprint.py."""

from __future__ import annotations

from dealcache.cache.fingerprint import item_id_for, request_fingerprint


class TestItemId:
    def test_stable_across_calls(self):
        link = "https://www.pepper.pl/promocje/iphone-15-case-1"
        assert item_id_for(link) == item_id_for(link)

    def test_known_value(self):
        # Plain base64 of the link bytes, identical in every process.
        assert item_id_for("https://a.b/c") == "aHR0cHM6Ly9hLmIvYw=="

    def test_distinct_links_distinct_ids(self):
        assert item_id_for("https://a.b/1") != item_id_for("https://a.b/2")

    def test_non_ascii_link(self):
        link = "https://www.pepper.pl/promocje/zażółć-gęślą-jaźń"
        assert item_id_for(link).isascii()


class TestRequestFingerprint:
    def test_order_independent(self):
        assert request_fingerprint({"days": 7, "limit": 500}) == request_fingerprint(
            {"limit": 500, "days": 7}
        )

    def test_values_matter(self):
        assert request_fingerprint({"days": 7, "limit": 500}) != request_fingerprint(
            {"days": 7, "limit": 501}
        )

    def test_md5_hex(self):
        fp = request_fingerprint({"key": "articles"})
        assert len(fp) == 32
        int(fp, 16)
