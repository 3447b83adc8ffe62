"""Tests for ClassroomSyncScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tasksync.engines.sync_scheduler import ClassroomSyncScheduler
from tasksync.models.sync import SyncResult


@pytest.fixture
def sync_engine():
    engine = MagicMock()
    engine.sync_now = AsyncMock(return_value=SyncResult(new_tasks=2))
    return engine


class TestTick:
    @pytest.mark.asyncio
    async def test_runs_sync_with_current_token(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, token_provider=lambda: "tok")

        await scheduler.tick()

        sync_engine.sync_now.assert_awaited_once_with("tok")
        assert scheduler.runs == 1

    @pytest.mark.asyncio
    async def test_skips_without_token(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, token_provider=lambda: None)

        await scheduler.tick()

        sync_engine.sync_now.assert_not_called()
        assert scheduler.runs == 0

    @pytest.mark.asyncio
    async def test_accepts_async_token_provider(self, sync_engine):
        async def provider():
            return "fresh-token"

        scheduler = ClassroomSyncScheduler(sync_engine, token_provider=provider)

        await scheduler.tick()

        sync_engine.sync_now.assert_awaited_once_with("fresh-token")

    @pytest.mark.asyncio
    async def test_failed_sync_does_not_raise(self, sync_engine):
        sync_engine.sync_now.return_value = SyncResult(error="Backend Error")
        scheduler = ClassroomSyncScheduler(sync_engine, token_provider=lambda: "tok")

        await scheduler.tick()

        assert scheduler.runs == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_disabled_scheduler_never_starts(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, lambda: "tok", enabled=False)

        await scheduler.start()

        assert scheduler.is_running is False
        assert scheduler.get_status()["enabled"] is False

    @pytest.mark.asyncio
    async def test_runs_on_interval_until_stopped(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, lambda: "tok", interval_minutes=0.0002)

        await scheduler.start()
        assert scheduler.is_running is True
        await asyncio.sleep(0.1)
        scheduler.stop()
        await asyncio.sleep(0)

        assert scheduler.runs >= 1
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_double_start_keeps_one_loop(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, lambda: "tok", interval_minutes=60)

        await scheduler.start()
        first_task = scheduler._task
        await scheduler.start()

        assert scheduler._task is first_task
        scheduler.stop()

    def test_status(self, sync_engine):
        scheduler = ClassroomSyncScheduler(sync_engine, lambda: "tok", interval_minutes=30)

        assert scheduler.get_status() == {
            "enabled": True,
            "running": False,
            "interval_minutes": 30.0,
            "runs": 0,
        }
