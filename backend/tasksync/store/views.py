"""Derived read views over the TaskStore's task collection.

Nothing here is persisted; every view is recomputed from the current cache.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from typing import Literal

from tasksync.models.task import TASK_STATUSES, Task, TaskStatus

VirtualList = Literal["today", "upcoming", "completed"]
VIRTUAL_LISTS: tuple[str, ...] = ("today", "upcoming", "completed")

Quadrant = Literal["do", "schedule", "delegate", "eliminate"]

UPCOMING_DAYS = 7
URGENT_WITHIN_DAYS = 2


def tasks_for_list(tasks: Iterable[Task], list_id: str, today: date | None = None) -> list[Task]:
    """Tasks for a virtual list name or a concrete list id."""
    today = today or date.today()
    if list_id == "today":
        return [t for t in tasks if t.due_date == today and not t.is_completed]
    if list_id == "upcoming":
        horizon = today + timedelta(days=UPCOMING_DAYS)
        return [
            t for t in tasks
            if t.due_date is not None and today <= t.due_date <= horizon and not t.is_completed
        ]
    if list_id == "completed":
        return [t for t in tasks if t.is_completed]
    return [t for t in tasks if t.list_id == list_id]


def tasks_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Partition tasks into board columns.

    A task with the completion flag set always lands in ``done``, whatever its
    raw status says; the other columns only hold incomplete tasks.
    """
    board: dict[TaskStatus, list[Task]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        if task.is_completed or task.status == "done":
            board["done"].append(task)
        else:
            board[task.status].append(task)
    return board


def classify(task: Task, today: date | None = None) -> tuple[bool, bool]:
    """Return (is_urgent, is_important) for the priority matrix.

    Stored flags win; otherwise urgency comes from a p1 priority or a due date
    within two days (overdue included), importance from p1/p2.
    """
    today = today or date.today()
    due_soon = task.due_date is not None and (task.due_date - today).days <= URGENT_WITHIN_DAYS
    is_urgent = task.is_urgent or due_soon or task.priority == "p1"
    is_important = task.is_important or task.priority in ("p1", "p2")
    return is_urgent, is_important


def matrix_quadrants(tasks: Iterable[Task], today: date | None = None) -> dict[Quadrant, list[Task]]:
    """Group incomplete tasks into the four urgent/important quadrants."""
    quadrants: dict[Quadrant, list[Task]] = {
        "do": [], "schedule": [], "delegate": [], "eliminate": [],
    }
    for task in tasks:
        if task.is_completed:
            continue
        urgent, important = classify(task, today)
        if urgent and important:
            quadrants["do"].append(task)
        elif important:
            quadrants["schedule"].append(task)
        elif urgent:
            quadrants["delegate"].append(task)
        else:
            quadrants["eliminate"].append(task)
    return quadrants
