# src/core/errors.py — v1
"""Error taxonomy shared by the cache, categorization and scheduler layers.

Only NotConfiguredError and LimitExceededError are meant to reach API
callers. The remaining failures are absorbed where they happen and only
show up as reduced counts in results and reports.
"""

from __future__ import annotations


class DealCacheError(Exception):
    """Base class for all dealcache errors."""


class NotConfiguredError(DealCacheError):
    """Required credentials for an external service are absent."""

    def __init__(self, service: str, detail: str = "") -> None:
        self.service = service
        msg = f"{service} is not configured"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class LimitExceededError(DealCacheError, ValueError):
    """A request parameter exceeds its hard ceiling."""

    def __init__(self, name: str, requested: int, ceiling: int) -> None:
        self.name = name
        self.requested = requested
        self.ceiling = ceiling
        super().__init__(
            f"Invalid request: {name} must be less than or equal to {ceiling} "
            f"(got {requested})"
        )


class FetchFailure(DealCacheError):
    """A single source page could not be fetched."""

    def __init__(self, page: int, cause: Exception | None = None) -> None:
        self.page = page
        self.cause = cause
        super().__init__(f"Failed to fetch page {page}: {cause}")


class DurableStoreError(DealCacheError):
    """The durable store rejected a request or could not be reached."""

    def __init__(self, operation: str, table: str, detail: str) -> None:
        self.operation = operation
        self.table = table
        super().__init__(f"{operation} on {table} failed: {detail}")


class QueryBatchFailure(DurableStoreError):
    """One membership sub-batch of a durable lookup failed."""


class PersistBatchFailure(DurableStoreError):
    """One upsert batch failed and has to be retried record by record."""


class ClassifierFailure(DealCacheError):
    """The hosted classifier call failed."""


class InvalidClassifierLabel(ClassifierFailure):
    """The hosted classifier answered with a label outside the catalogue."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Classifier returned unknown category: {label!r}")
