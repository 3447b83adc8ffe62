"""Task, TaskList and Workspace models — the shapes held by the TaskStore.

These are plain pydantic models (not tables). The TaskStore replaces whole
instances on every mutation (revalidating the merged fields) so a persistence
call always receives the snapshot that was current when it was issued.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

Priority = Literal["p1", "p2", "p3", "p4"]  # p1 = most urgent
TaskStatus = Literal["todo", "in_progress", "review", "done"]
TaskSource = Literal["manual", "classroom"]
WorkspaceType = Literal["personal", "academic"]

PRIORITIES: tuple[Priority, ...] = ("p1", "p2", "p3", "p4")
TASK_STATUSES: tuple[TaskStatus, ...] = ("todo", "in_progress", "review", "done")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Label(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    color: str = "#94A3B8"


class Subtask(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    is_completed: bool = False
    sort_order: int = 0


class Task(BaseModel):
    """A single task, either typed in by the owner or imported from Classroom."""

    id: str
    list_id: str
    title: str
    description: str | None = None
    status: TaskStatus = "todo"
    priority: Priority = "p4"
    # Stored overrides for the matrix view; the view derives the rest at read time
    is_urgent: bool = False
    is_important: bool = False
    due_date: date | None = None
    completed_at: datetime | None = None
    is_completed: bool = False
    sort_order: int = 0
    source: TaskSource = "manual"
    labels: list[Label] = Field(default_factory=list)
    subtasks: list[Subtask] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class TaskList(BaseModel):
    id: str
    workspace_id: str
    name: str
    color: str = "#7C3AED"
    icon: str | None = None
    sort_order: int = 0
    is_academic: bool = False
    course_name: str | None = None


class Workspace(BaseModel):
    id: str
    name: str
    type: WorkspaceType


# === Reference data ===

DEFAULT_WORKSPACES: tuple[Workspace, ...] = (
    Workspace(id="personal", name="Personal", type="personal"),
    Workspace(id="academic", name="Academics", type="academic"),
)

DEFAULT_LISTS: tuple[TaskList, ...] = (
    TaskList(id="inbox", workspace_id="personal", name="Inbox", color="#7C3AED", sort_order=0),
    TaskList(id="projects", workspace_id="personal", name="Projects", color="#3B82F6", sort_order=1),
)
