"""Tests for PersistenceGateway against an in-memory SQLite database."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from tasksync.db.gateway import PersistenceError, PersistenceGateway
from tasksync.models.records import ClassroomSyncRecord, ProfileRecord
from tasksync.models.sync import SyncedCourse, SyncState
from tasksync.models.task import Label, Subtask, Task, TaskList


def _task(task_id: str, list_id: str = "inbox", **kwargs) -> Task:
    return Task(id=task_id, list_id=list_id, title=f"Task {task_id}", **kwargs)


def _list(list_id: str, sort_order: int = 0) -> TaskList:
    return TaskList(id=list_id, workspace_id="personal", name=list_id.title(), sort_order=sort_order)


class TestLists:
    @pytest.mark.asyncio
    async def test_fetch_orders_by_sort_order(self, gateway):
        await gateway.upsert_list("owner-1", _list("later", sort_order=2))
        await gateway.upsert_list("owner-1", _list("first", sort_order=0))

        lists = await gateway.fetch_lists("owner-1")

        assert [lst.id for lst in lists] == ["first", "later"]

    @pytest.mark.asyncio
    async def test_upsert_same_id_overwrites(self, gateway):
        await gateway.upsert_list("owner-1", _list("inbox"))
        renamed = _list("inbox").model_copy(update={"name": "Renamed"})
        await gateway.upsert_list("owner-1", renamed)

        lists = await gateway.fetch_lists("owner-1")

        assert len(lists) == 1
        assert lists[0].name == "Renamed"

    @pytest.mark.asyncio
    async def test_rows_are_scoped_to_owner(self, gateway):
        await gateway.upsert_list("owner-1", _list("inbox"))
        await gateway.upsert_list("owner-2", _list("inbox"))

        assert len(await gateway.fetch_lists("owner-1")) == 1
        assert await gateway.fetch_lists("owner-3") == []

    @pytest.mark.asyncio
    async def test_delete_list_removes_its_tasks(self, gateway):
        await gateway.upsert_list("owner-1", _list("projects"))
        await gateway.upsert_task("owner-1", _task("t1", list_id="projects"))
        await gateway.upsert_task("owner-1", _task("t2", list_id="inbox"))

        await gateway.delete_list("owner-1", "projects")

        assert await gateway.fetch_lists("owner-1") == []
        assert [t.id for t in await gateway.fetch_tasks("owner-1")] == ["t2"]


class TestTasks:
    @pytest.mark.asyncio
    async def test_round_trip_preserves_fields(self, gateway):
        task = _task(
            "t1",
            description="Bring calculator",
            status="in_progress",
            priority="p2",
            due_date=date(2026, 11, 3),
            source="classroom",
            labels=[Label(name="exam", color="#EF4444")],
            subtasks=[Subtask(title="Revise ch. 4")],
        )
        await gateway.upsert_task("owner-1", task)

        (loaded,) = await gateway.fetch_tasks("owner-1")

        assert loaded.description == "Bring calculator"
        assert loaded.status == "in_progress"
        assert loaded.priority == "p2"
        assert loaded.due_date == date(2026, 11, 3)
        assert loaded.source == "classroom"
        assert loaded.labels[0].name == "exam"
        assert loaded.subtasks[0].title == "Revise ch. 4"

    @pytest.mark.asyncio
    async def test_upsert_existing_id_is_overwrite(self, gateway):
        await gateway.upsert_task("owner-1", _task("t1"))
        await gateway.upsert_task("owner-1", _task("t1", status="done", is_completed=True))

        tasks = await gateway.fetch_tasks("owner-1")

        assert len(tasks) == 1
        assert tasks[0].is_completed is True

    @pytest.mark.asyncio
    async def test_delete_task(self, gateway):
        await gateway.upsert_task("owner-1", _task("t1"))
        await gateway.upsert_task("owner-2", _task("t1"))

        await gateway.delete_task("owner-1", "t1")

        assert await gateway.fetch_tasks("owner-1") == []
        assert len(await gateway.fetch_tasks("owner-2")) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_task_is_noop(self, gateway):
        await gateway.delete_task("owner-1", "never-existed")


class TestSyncState:
    @pytest.mark.asyncio
    async def test_missing_row_means_first_sync(self, gateway):
        assert await gateway.fetch_sync_state("owner-1") is None

    @pytest.mark.asyncio
    async def test_round_trip(self, gateway):
        synced_at = datetime(2026, 10, 1, 8, 30, tzinfo=timezone.utc)
        state = SyncState(
            synced_courses=[SyncedCourse(id="c1", name="Biology", list_id="classroom-c1")],
            imported_coursework_ids={"c1:w1", "c1:w2"},
            last_sync_at=synced_at,
        )
        await gateway.upsert_sync_state("owner-1", state)

        loaded = await gateway.fetch_sync_state("owner-1")

        assert loaded.synced_courses == state.synced_courses
        assert loaded.imported_coursework_ids == {"c1:w1", "c1:w2"}
        assert loaded.last_sync_at.replace(tzinfo=None) == synced_at.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_stored_blob_uses_list_id_wire_key(self, gateway, db_engine):
        state = SyncState(synced_courses=[SyncedCourse(id="c1", name="Biology", list_id="classroom-c1")])
        await gateway.upsert_sync_state("owner-1", state)

        with Session(db_engine) as session:
            row = session.get(ClassroomSyncRecord, "owner-1")
            assert row.synced_courses == [{"id": "c1", "name": "Biology", "listId": "classroom-c1"}]

    @pytest.mark.asyncio
    async def test_second_write_replaces_blob(self, gateway):
        await gateway.upsert_sync_state("owner-1", SyncState(imported_coursework_ids={"c1:w1"}))
        await gateway.upsert_sync_state("owner-1", SyncState(imported_coursework_ids={"c1:w1", "c1:w2"}))

        loaded = await gateway.fetch_sync_state("owner-1")

        assert loaded.imported_coursework_ids == {"c1:w1", "c1:w2"}


class TestProfiles:
    @pytest.mark.asyncio
    async def test_fetch_profile(self, gateway, db_engine):
        with Session(db_engine) as session:
            session.add(ProfileRecord(id="owner-1", display_name="Ada", email="ada@example.edu"))
            session.commit()

        profile = await gateway.fetch_profile("owner-1")

        assert profile.display_name == "Ada"
        assert await gateway.fetch_profile("nobody") is None


@pytest.mark.asyncio
async def test_database_errors_become_persistence_errors():
    """A missing table surfaces as PersistenceError, not a raw SQLAlchemy error."""
    bare = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    gw = PersistenceGateway(bare)

    with pytest.raises(PersistenceError):
        await gw.fetch_tasks("owner-1")
