"""Tests for OwnerSession — sign-in loading, start-up sync and owner switching."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import make_course, make_feed, make_work

from tasksync.db.gateway import PersistenceError
from tasksync.engines.classroom_sync import OWNER_CHANGED_MESSAGE, ClassroomSyncEngine
from tasksync.integrations.classroom import ClassroomClient
from tasksync.models.records import ProfileRecord
from tasksync.models.sync import SyncResult
from tasksync.models.task import Task
from tasksync.session import OwnerSession
from tasksync.store.task_store import TaskStore


@pytest.fixture
def sync_engine():
    engine = MagicMock()
    engine.load_sync_state = AsyncMock()
    engine.sync_now = AsyncMock(return_value=SyncResult(new_tasks=3))
    return engine


class TestSignIn:
    @pytest.mark.asyncio
    async def test_loads_owner_data_and_sync_state(self, mock_gateway, sync_engine):
        mock_gateway.fetch_tasks.return_value = [Task(id="t1", list_id="inbox", title="Read")]
        mock_gateway.fetch_profile.return_value = ProfileRecord(id="owner-1", display_name="Ada")
        store = TaskStore(mock_gateway)
        session = OwnerSession(store, sync_engine, mock_gateway, sync_on_start=False)

        result = await session.sign_in("owner-1")

        assert result is None
        assert session.is_signed_in
        assert session.profile.display_name == "Ada"
        assert store.owner_id == "owner-1"
        assert [t.id for t in store.tasks] == ["t1"]
        sync_engine.load_sync_state.assert_awaited_once_with("owner-1")
        sync_engine.sync_now.assert_not_called()

    @pytest.mark.asyncio
    async def test_syncs_on_start_when_token_given(self, store, sync_engine):
        session = OwnerSession(store, sync_engine, sync_on_start=True)

        result = await session.sign_in("owner-1", classroom_token="tok")

        assert result.new_tasks == 3
        sync_engine.sync_now.assert_awaited_once_with("tok")
        assert session.token() == "tok"

    @pytest.mark.asyncio
    async def test_no_start_up_sync_without_token(self, store, sync_engine):
        session = OwnerSession(store, sync_engine, sync_on_start=True)

        assert await session.sign_in("owner-1") is None
        sync_engine.sync_now.assert_not_called()

    @pytest.mark.asyncio
    async def test_profile_failure_does_not_block_sign_in(self, mock_gateway, sync_engine):
        mock_gateway.fetch_profile.side_effect = PersistenceError("db locked")
        session = OwnerSession(TaskStore(mock_gateway), sync_engine, mock_gateway, sync_on_start=False)

        await session.sign_in("owner-1")

        assert session.owner_id == "owner-1"
        assert session.profile is None


class TestOwnerSwitch:
    @pytest.mark.asyncio
    async def test_switching_owner_resets_previous_state(self, store, sync_engine):
        session = OwnerSession(store, sync_engine, sync_on_start=False)
        await session.sign_in("owner-1", classroom_token="tok-1")
        store.create_task("Owner one's task", "inbox")

        await session.sign_in("owner-2")

        assert session.owner_id == "owner-2"
        assert session.classroom_token is None
        assert store.tasks == []
        sync_engine.clear_state.assert_called_once()

    @pytest.mark.asyncio
    async def test_sign_out(self, store, sync_engine):
        session = OwnerSession(store, sync_engine, sync_on_start=False)
        await session.sign_in("owner-1", classroom_token="tok")

        session.sign_out()

        assert session.is_signed_in is False
        assert session.token() is None
        assert store.owner_id is None
        sync_engine.clear_state.assert_called_once()


class TestSyncAcrossOwnerSwitch:
    @pytest.mark.asyncio
    async def test_feed_fetched_for_previous_owner_is_discarded(self, mock_gateway):
        """A sync started for one owner never lands in the next owner's data."""
        release = asyncio.Event()
        client = AsyncMock(spec=ClassroomClient)

        async def slow_fetch(token):
            await release.wait()
            return make_feed((make_course("cA", "Algebra"), [make_work("w1")]))

        client.fetch_all.side_effect = slow_fetch
        store = TaskStore(mock_gateway)
        engine = ClassroomSyncEngine(store, client, mock_gateway)
        session = OwnerSession(store, engine, mock_gateway, sync_on_start=False)
        await session.sign_in("alice", classroom_token="tok-a")

        in_flight = asyncio.create_task(engine.sync_now("tok-a"))
        await asyncio.sleep(0)
        await session.sign_in("bob")
        release.set()
        result = await in_flight
        await store.flush()

        assert result.skipped is True
        assert result.error == OWNER_CHANGED_MESSAGE
        assert store.owner_id == "bob"
        assert store.get_list("classroom-cA") is None
        assert store.tasks == []
        assert engine.imported_coursework_ids == set()
        mock_gateway.upsert_task.assert_not_called()
        mock_gateway.upsert_list.assert_not_called()
        mock_gateway.upsert_sync_state.assert_not_called()

    @pytest.mark.asyncio
    async def test_feed_discarded_after_sign_out(self, mock_gateway):
        release = asyncio.Event()
        client = AsyncMock(spec=ClassroomClient)

        async def slow_fetch(token):
            await release.wait()
            return make_feed((make_course("cA", "Algebra"), [make_work("w1")]))

        client.fetch_all.side_effect = slow_fetch
        store = TaskStore(mock_gateway)
        engine = ClassroomSyncEngine(store, client, mock_gateway)
        session = OwnerSession(store, engine, mock_gateway, sync_on_start=False)
        await session.sign_in("alice", classroom_token="tok-a")

        in_flight = asyncio.create_task(engine.sync_now("tok-a"))
        await asyncio.sleep(0)
        session.sign_out()
        release.set()
        result = await in_flight

        assert result.skipped is True
        assert store.tasks == []
        assert engine.is_syncing is False
        mock_gateway.upsert_sync_state.assert_not_called()
