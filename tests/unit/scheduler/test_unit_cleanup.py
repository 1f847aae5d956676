# tests/unit/scheduler/test_unit_cleanup.py — v1
"""Tests for scheduler/cleanup.py."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from dealcache.scheduler.cleanup import CleanupScheduler
from dealcache.scheduler.guard import RunGuard


class TestCleanupTick:
    @pytest.mark.asyncio
    async def test_sweeps_expired(self, ephemeral, clock):
        await ephemeral.set("old", 1)
        clock.advance(3600)
        await ephemeral.set("fresh", 2)

        scheduler = CleanupScheduler(ephemeral, RunGuard("cleanup"), 900, 3600)
        assert await scheduler.tick() == 1
        assert await ephemeral.get("fresh") == 2

    @pytest.mark.asyncio
    async def test_skips_when_running(self, ephemeral):
        guard = RunGuard("cleanup")
        guard.try_acquire()
        scheduler = CleanupScheduler(ephemeral, guard)
        assert await scheduler.tick() is None
        assert guard.running

    @pytest.mark.asyncio
    async def test_guard_released_on_error(self):
        cache = AsyncMock()
        cache.sweep.side_effect = RuntimeError("boom")
        guard = RunGuard("cleanup")
        scheduler = CleanupScheduler(cache, guard)
        with pytest.raises(RuntimeError):
            await scheduler.tick()
        assert not guard.running


class TestCleanupLoop:
    @pytest.mark.asyncio
    async def test_runs_immediately_then_every_interval(self):
        cache = AsyncMock()
        cache.sweep.return_value = 0
        sleeps: list[float] = []
        scheduler: CleanupScheduler

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            if len(sleeps) == 3:
                scheduler.running = False
            await asyncio.sleep(0)

        scheduler = CleanupScheduler(
            cache, RunGuard("cleanup"), interval_seconds=900, expiration_seconds=3600,
            sleep=fake_sleep,
        )
        scheduler.start()
        await scheduler.task
        assert cache.sweep.await_count == 3
        assert sleeps == [900, 900, 900]
        cache.sweep.assert_awaited_with(3600)

    @pytest.mark.asyncio
    async def test_loop_survives_errors(self):
        cache = AsyncMock()
        cache.sweep.side_effect = [RuntimeError("locked"), 2]
        calls = {"n": 0}
        scheduler: CleanupScheduler

        async def fake_sleep(seconds: float) -> None:
            calls["n"] += 1
            if calls["n"] == 2:
                scheduler.running = False

        scheduler = CleanupScheduler(cache, RunGuard("cleanup"), sleep=fake_sleep)
        scheduler.start()
        await scheduler.task
        assert cache.sweep.await_count == 2

    @pytest.mark.asyncio
    async def test_stop_cancels(self, ephemeral):
        scheduler = CleanupScheduler(ephemeral, RunGuard("cleanup"), interval_seconds=3600)
        scheduler.start()
        await asyncio.sleep(0)
        await scheduler.stop()
        assert scheduler.task is None
        assert not scheduler.running
