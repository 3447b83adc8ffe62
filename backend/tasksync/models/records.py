"""SQLModel tables mirrored by the PersistenceGateway.

Column names are the snake_case wire names; ``tasks`` and ``task_lists`` use a
compound primary key of (id, owner_id) so an upsert of an existing id is an
overwrite for that owner, never a second row.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlmodel import JSON, Column, SQLModel
from sqlmodel import Field as SQLField


class TaskListRecord(SQLModel, table=True):
    __tablename__ = "task_lists"

    id: str = SQLField(primary_key=True)
    owner_id: str = SQLField(primary_key=True, index=True)
    workspace_id: str
    name: str
    color: str
    icon: str | None = None
    sort_order: int = 0
    is_academic: bool = False
    course_name: str | None = None


class TaskRecord(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = SQLField(primary_key=True)
    owner_id: str = SQLField(primary_key=True, index=True)
    list_id: str = SQLField(index=True)
    title: str
    description: str | None = None
    status: str = "todo"  # "todo" | "in_progress" | "review" | "done"
    priority: str = "p4"  # "p1" (most urgent) .. "p4"
    is_urgent: bool = False
    is_important: bool = False
    due_date: date | None = None
    completed_at: datetime | None = None
    is_completed: bool = False
    sort_order: int = 0
    source: str = "manual"  # "manual" | "classroom"
    labels: list = SQLField(default_factory=list, sa_column=Column(JSON))
    subtasks: list = SQLField(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))


class ClassroomSyncRecord(SQLModel, table=True):
    """Reconciliation state for one owner, written wholesale after each sync."""

    __tablename__ = "classroom_sync"

    owner_id: str = SQLField(primary_key=True)
    # [{"id": courseId, "name": courseName, "listId": localListId}, ...]
    synced_courses: list = SQLField(default_factory=list, sa_column=Column(JSON))
    # ["courseId:courseworkId", ...]
    imported_coursework_ids: list = SQLField(default_factory=list, sa_column=Column(JSON))
    last_sync_at: datetime | None = None
    updated_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))


class ProfileRecord(SQLModel, table=True):
    __tablename__ = "profiles"

    id: str = SQLField(primary_key=True)
    display_name: str = ""
    email: str = ""
    created_at: datetime = SQLField(default_factory=lambda: datetime.now(timezone.utc))
