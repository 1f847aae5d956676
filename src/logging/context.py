# src/logging/context.py — v2
"""Contextual logging support: attach job, run_id and batch to log records."""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_job: contextvars.ContextVar[str | None] = contextvars.ContextVar("job", default=None)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
_batch: contextvars.ContextVar[int | None] = contextvars.ContextVar("batch", default=None)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    job: str | None = None
    run_id: str | None = None
    batch: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(job=_job.get(), run_id=_run_id.get(), batch=_batch.get())


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def job_context(job: str, run_id: str | None = None) -> Iterator[str]:
    """Tag every record logged inside the block with ``job`` and a run id."""
    rid = run_id or new_run_id()
    job_token = _job.set(job)
    run_token = _run_id.set(rid)
    try:
        yield rid
    finally:
        _run_id.reset(run_token)
        _job.reset(job_token)


def set_batch(index: int | None) -> None:
    """Set the batch number of the current job (None clears it)."""
    _batch.set(index)


def clear_context() -> None:
    """Reset all context variables."""
    _job.set(None)
    _run_id.set(None)
    _batch.set(None)
