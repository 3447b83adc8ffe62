"""PersistenceGateway — owner-scoped async access to the SQLModel tables.

Translates between the in-memory models (Task, TaskList, SyncState) and their
wire rows. All blocking session work runs in the default executor so callers
on the event loop only ever await.

Usage:
    gateway = PersistenceGateway()
    tasks = await gateway.fetch_tasks(owner_id)
    await gateway.upsert_task(owner_id, task)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Callable, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from tasksync.models.records import (
    ClassroomSyncRecord,
    ProfileRecord,
    TaskListRecord,
    TaskRecord,
)
from tasksync.models.sync import SyncedCourse, SyncState
from tasksync.models.task import Task, TaskList

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceError(Exception):
    """A gateway read or write failed."""


# === Row <-> model translation ===


def list_to_record(owner_id: str, task_list: TaskList) -> TaskListRecord:
    return TaskListRecord(owner_id=owner_id, **task_list.model_dump())


def record_to_list(row: TaskListRecord) -> TaskList:
    return TaskList(
        id=row.id,
        workspace_id=row.workspace_id,
        name=row.name,
        color=row.color,
        icon=row.icon,
        sort_order=row.sort_order,
        is_academic=row.is_academic,
        course_name=row.course_name,
    )


def task_to_record(owner_id: str, task: Task) -> TaskRecord:
    data = task.model_dump(mode="json", exclude={"due_date", "completed_at", "created_at"})
    return TaskRecord(
        owner_id=owner_id,
        due_date=task.due_date,
        completed_at=task.completed_at,
        created_at=task.created_at,
        **data,
    )


def record_to_task(row: TaskRecord) -> Task:
    return Task(
        id=row.id,
        list_id=row.list_id,
        title=row.title,
        description=row.description,
        status=row.status,
        priority=row.priority,
        is_urgent=row.is_urgent,
        is_important=row.is_important,
        due_date=row.due_date,
        completed_at=row.completed_at,
        is_completed=row.is_completed,
        sort_order=row.sort_order,
        source=row.source,
        labels=row.labels or [],
        subtasks=row.subtasks or [],
        created_at=row.created_at,
    )


class PersistenceGateway:
    """Transactional fetch/upsert/delete per entity type, keyed by (id, owner_id)."""

    def __init__(self, db_engine: Engine | None = None) -> None:
        if db_engine is None:
            from tasksync.db.database import engine as db_engine
        self._engine = db_engine

    async def _run(self, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args))
        except SQLAlchemyError as e:
            raise PersistenceError(f"{fn.__name__} failed: {e}") from e

    # ------------------------------------------------------------------
    # Task lists
    # ------------------------------------------------------------------

    def _fetch_lists(self, owner_id: str) -> list[TaskList]:
        with Session(self._engine) as session:
            rows = session.exec(
                select(TaskListRecord)
                .where(TaskListRecord.owner_id == owner_id)
                .order_by(col(TaskListRecord.sort_order))
            ).all()
            return [record_to_list(r) for r in rows]

    async def fetch_lists(self, owner_id: str) -> list[TaskList]:
        return await self._run(self._fetch_lists, owner_id)

    def _upsert_list(self, owner_id: str, task_list: TaskList) -> None:
        with Session(self._engine) as session:
            session.merge(list_to_record(owner_id, task_list))
            session.commit()

    async def upsert_list(self, owner_id: str, task_list: TaskList) -> None:
        await self._run(self._upsert_list, owner_id, task_list)

    def _delete_list(self, owner_id: str, list_id: str) -> None:
        with Session(self._engine) as session:
            tasks = session.exec(
                select(TaskRecord)
                .where(TaskRecord.owner_id == owner_id)
                .where(TaskRecord.list_id == list_id)
            ).all()
            for row in tasks:
                session.delete(row)
            row = session.get(TaskListRecord, (list_id, owner_id))
            if row is not None:
                session.delete(row)
            session.commit()

    async def delete_list(self, owner_id: str, list_id: str) -> None:
        """Delete a list and the tasks it contains."""
        await self._run(self._delete_list, owner_id, list_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _fetch_tasks(self, owner_id: str) -> list[Task]:
        with Session(self._engine) as session:
            rows = session.exec(
                select(TaskRecord)
                .where(TaskRecord.owner_id == owner_id)
                .order_by(col(TaskRecord.sort_order))
            ).all()
            return [record_to_task(r) for r in rows]

    async def fetch_tasks(self, owner_id: str) -> list[Task]:
        return await self._run(self._fetch_tasks, owner_id)

    def _upsert_task(self, owner_id: str, task: Task) -> None:
        with Session(self._engine) as session:
            session.merge(task_to_record(owner_id, task))
            session.commit()

    async def upsert_task(self, owner_id: str, task: Task) -> None:
        await self._run(self._upsert_task, owner_id, task)

    def _delete_task(self, owner_id: str, task_id: str) -> None:
        with Session(self._engine) as session:
            row = session.get(TaskRecord, (task_id, owner_id))
            if row is not None:
                session.delete(row)
            session.commit()

    async def delete_task(self, owner_id: str, task_id: str) -> None:
        await self._run(self._delete_task, owner_id, task_id)

    # ------------------------------------------------------------------
    # Classroom sync state
    # ------------------------------------------------------------------

    def _fetch_sync_state(self, owner_id: str) -> SyncState | None:
        with Session(self._engine) as session:
            row = session.get(ClassroomSyncRecord, owner_id)
            if row is None:
                return None
            return SyncState(
                synced_courses=[SyncedCourse.model_validate(c) for c in row.synced_courses or []],
                imported_coursework_ids=set(row.imported_coursework_ids or []),
                last_sync_at=row.last_sync_at,
            )

    async def fetch_sync_state(self, owner_id: str) -> SyncState | None:
        """Load the owner's sync blob; None means no prior sync."""
        return await self._run(self._fetch_sync_state, owner_id)

    def _upsert_sync_state(self, owner_id: str, state: SyncState) -> None:
        with Session(self._engine) as session:
            session.merge(
                ClassroomSyncRecord(
                    owner_id=owner_id,
                    synced_courses=[c.model_dump(by_alias=True) for c in state.synced_courses],
                    imported_coursework_ids=sorted(state.imported_coursework_ids),
                    last_sync_at=state.last_sync_at,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
        logger.debug(
            "Sync state saved for %s: %d courses, %d imported keys",
            owner_id, len(state.synced_courses), len(state.imported_coursework_ids),
        )

    async def upsert_sync_state(self, owner_id: str, state: SyncState) -> None:
        """Write the whole sync blob for the owner (replaces any previous row)."""
        await self._run(self._upsert_sync_state, owner_id, state)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def _fetch_profile(self, owner_id: str) -> ProfileRecord | None:
        with Session(self._engine) as session:
            row = session.get(ProfileRecord, owner_id)
            if row is not None:
                session.expunge(row)
            return row

    async def fetch_profile(self, owner_id: str) -> ProfileRecord | None:
        return await self._run(self._fetch_profile, owner_id)
