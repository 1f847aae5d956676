# src/cache/fingerprint.py — v1
"""Deterministic identity for items and cache requests.

Two kinds of fingerprints are used:
  - item ids: base64 encoding of the item link, used as the
    durable primary key and as the cache-membership test key.
  - request hashes: MD5 over the sorted ``key:value`` pairs of the logical
    request parameters, used as the ephemeral cache primary key.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Any, Mapping


def item_id_for(link: str) -> str:
    """Return the stable id for an item link.

    Equal links always yield equal ids, across calls and processes.
    """
    return base64.b64encode(link.encode("utf-8")).decode("ascii")


def request_fingerprint(params: Mapping[str, Any]) -> str:
    """Hash of the sorted ``key:value`` pairs of a parameter set.

    Key order in the mapping does not matter.
    """
    canonical = "|".join(f"{key}:{params[key]}" for key in sorted(params))
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()  # noqa: S324
