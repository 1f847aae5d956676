# src/scheduler/guard.py — v1
"""Skip-if-running guard shared by the scheduled jobs."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class RunGuard:
    """At most one holder at a time; a second caller is refused, not queued.

    Acquire and release are plain attribute updates with no await in
    between, so they are atomic with respect to the event loop.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._running = False
        self.runs_started = 0
        self.runs_finished = 0

    @property
    def running(self) -> bool:
        return self._running

    def try_acquire(self) -> bool:
        if self._running:
            logger.info("%s already running, skipping", self.name)
            return False
        self._running = True
        self.runs_started += 1
        return True

    def release(self) -> None:
        if not self._running:
            logger.warning("%s released while not running", self.name)
            return
        self._running = False
        self.runs_finished += 1
