"""TaskStore — the owner's in-memory workspaces, lists and tasks.

Every mutation is synchronous against the cache and returns immediately with
the new state. Each one then schedules its own unawaited write through the
PersistenceGateway. Write failures are logged and dropped: the cache stays
authoritative for the session, and the gateway is only eventually consistent
with the last mutation issued.

Usage:
    store = TaskStore(gateway)
    await store.load_owner_data(owner_id)
    task = store.create_task("Read chapter 4", list_id="inbox")
    store.toggle_completion(task.id)   # cache updated before the write starts
    await store.flush()                # optional: wait for in-flight writes
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from tasksync.models.task import (
    DEFAULT_LISTS,
    DEFAULT_WORKSPACES,
    Label,
    Priority,
    Subtask,
    Task,
    TaskList,
    TaskStatus,
    Workspace,
)
from tasksync.store import views

if TYPE_CHECKING:
    from tasksync.db.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "source", "created_at"})


class TaskNotFoundError(Exception):
    """Mutation targeted a task id that is not in the cache."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


def _apply_completion(task: Task, changes: dict[str, Any]) -> dict[str, Any]:
    """Bring status, is_completed and completed_at into agreement.

    Whichever of status / is_completed the caller set wins; the other follows.
    """
    changes = dict(changes)
    if "is_completed" in changes and "status" not in changes:
        if changes["is_completed"]:
            changes["status"] = "done"
        elif task.status == "done":
            changes["status"] = "todo"
    elif "status" in changes:
        changes["is_completed"] = changes["status"] == "done"

    if "is_completed" in changes:
        if changes["is_completed"] and not task.is_completed:
            changes.setdefault("completed_at", datetime.now(timezone.utc))
        elif not changes["is_completed"]:
            changes["completed_at"] = None
    return changes


class TaskStore:
    """Authoritative cache of one owner's task data, write-through to the gateway."""

    def __init__(self, gateway: PersistenceGateway | None = None) -> None:
        self._gateway = gateway
        self.owner_id: str | None = None
        self._workspaces: list[Workspace] = list(DEFAULT_WORKSPACES)
        self._lists: list[TaskList] = list(DEFAULT_LISTS)
        self._tasks: list[Task] = []
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read access (copies, so callers cannot mutate the cache)
    # ------------------------------------------------------------------

    @property
    def workspaces(self) -> list[Workspace]:
        return list(self._workspaces)

    @property
    def lists(self) -> list[TaskList]:
        return list(self._lists)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def get_task(self, task_id: str) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def get_list(self, list_id: str) -> TaskList | None:
        return next((lst for lst in self._lists if lst.id == list_id), None)

    def count_tasks(self, list_id: str) -> int:
        return sum(1 for t in self._tasks if t.list_id == list_id)

    def tasks_for_list(self, list_id: str, today: date | None = None) -> list[Task]:
        return views.tasks_for_list(self._tasks, list_id, today)

    def tasks_by_status(self, list_id: str, today: date | None = None) -> dict[TaskStatus, list[Task]]:
        return views.tasks_by_status(self.tasks_for_list(list_id, today))

    def matrix(self, today: date | None = None) -> dict[str, list[Task]]:
        return views.matrix_quadrants(self._tasks, today)

    # ------------------------------------------------------------------
    # Owner lifecycle
    # ------------------------------------------------------------------

    async def load_owner_data(self, owner_id: str) -> None:
        """Replace the cache with the owner's persisted lists and tasks."""
        self.reset()
        self.owner_id = owner_id
        if self._gateway is None:
            return
        try:
            lists = await self._gateway.fetch_lists(owner_id)
            tasks = await self._gateway.fetch_tasks(owner_id)
        except Exception as e:
            logger.error("Failed to load data for owner %s: %s", owner_id, e)
            return
        if lists:
            self._lists = lists
        self._tasks = tasks
        logger.info("Loaded %d lists and %d tasks for owner %s", len(self._lists), len(tasks), owner_id)

    def reset(self) -> None:
        """Drop owner-scoped state back to defaults (sign-out / owner switch).

        Writes already in flight still complete against their original owner.
        """
        self.owner_id = None
        self._workspaces = list(DEFAULT_WORKSPACES)
        self._lists = list(DEFAULT_LISTS)
        self._tasks = []

    # ------------------------------------------------------------------
    # Persistence scheduling
    # ------------------------------------------------------------------

    def _persist(self, action: str, method: str, *args: Any) -> None:
        if self._gateway is None or self.owner_id is None:
            logger.debug("No owner loaded; %s kept in memory only", action)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; %s not persisted", action)
            return
        call = getattr(self._gateway, method)
        write = loop.create_task(self._write(action, call(self.owner_id, *args)))
        self._pending.add(write)
        write.add_done_callback(self._pending.discard)

    @staticmethod
    async def _write(action: str, pending_call: Awaitable[None]) -> None:
        try:
            await pending_call
        except Exception as e:
            logger.error("Failed to persist %s: %s", action, e)

    async def flush(self) -> None:
        """Wait for every write issued so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def cancel_pending(self) -> None:
        for write in list(self._pending):
            write.cancel()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _index(self, task_id: str) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        raise TaskNotFoundError(task_id)

    def _replace(self, task_id: str, changes: dict[str, Any], action: str) -> Task:
        i = self._index(task_id)
        current = self._tasks[i]
        changes = _apply_completion(current, changes)
        updated = Task.model_validate({**current.model_dump(), **changes})
        self._tasks[i] = updated
        self._persist(f"{action} {task_id}", "upsert_task", updated)
        return updated

    def create_task(
        self,
        title: str,
        list_id: str,
        *,
        description: str | None = None,
        status: TaskStatus = "todo",
        priority: Priority = "p4",
        due_date: date | str | None = None,
        labels: list[Label] | None = None,
        subtasks: list[Subtask] | None = None,
    ) -> Task:
        """Create a manual task at the end of its list; it shows first in the cache."""
        task = Task(
            id=str(uuid4()),
            list_id=list_id,
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            sort_order=self.count_tasks(list_id),
            source="manual",
            labels=labels or [],
            subtasks=subtasks or [],
            status=status,
            is_completed=status == "done",
            completed_at=datetime.now(timezone.utc) if status == "done" else None,
        )
        self._tasks.insert(0, task)
        self._persist(f"new task {task.id}", "upsert_task", task)
        return task

    def import_external_task(self, task: Task) -> bool:
        """Append an externally sourced task unless its id is already cached.

        Returns False (and issues no write) for a duplicate id.
        """
        if self.get_task(task.id) is not None:
            logger.debug("Task %s already present, import skipped", task.id)
            return False
        self._tasks.append(task)
        self._persist(f"imported task {task.id}", "upsert_task", task)
        return True

    def create_list(self, task_list: TaskList) -> bool:
        """Add a list unless its id is already cached. Returns False for a duplicate."""
        if self.get_list(task_list.id) is not None:
            logger.debug("List %s already present, create skipped", task_list.id)
            return False
        self._lists.append(task_list)
        self._persist(f"list {task_list.id}", "upsert_list", task_list)
        return True

    def delete_list(self, list_id: str) -> bool:
        """Remove a list and its tasks. Returns False if the list is unknown."""
        if self.get_list(list_id) is None:
            return False
        self._lists = [lst for lst in self._lists if lst.id != list_id]
        self._tasks = [t for t in self._tasks if t.list_id != list_id]
        self._persist(f"list deletion {list_id}", "delete_list", list_id)
        return True

    def toggle_completion(self, task_id: str) -> Task:
        task = self._tasks[self._index(task_id)]
        return self._replace(task_id, {"is_completed": not task.is_completed}, "completion toggle")

    def update_fields(self, task_id: str, partial: dict[str, Any]) -> Task:
        """Shallow-merge ``partial`` into the task."""
        blocked = _IMMUTABLE_FIELDS & partial.keys()
        if blocked:
            raise ValueError(f"Cannot change {', '.join(sorted(blocked))} on task {task_id}")
        current = self._tasks[self._index(task_id)]
        if "list_id" in partial and partial["list_id"] != current.list_id and "sort_order" not in partial:
            # Moved tasks go to the end of their new list
            partial = {**partial, "sort_order": self.count_tasks(partial["list_id"])}
        return self._replace(task_id, partial, "update")

    def change_status(self, task_id: str, status: TaskStatus) -> Task:
        return self._replace(task_id, {"status": status}, "status change")

    def delete_task(self, task_id: str) -> None:
        i = self._index(task_id)
        del self._tasks[i]
        self._persist(f"task deletion {task_id}", "delete_task", task_id)
