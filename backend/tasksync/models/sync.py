"""Reconciliation state models: course mappings, the sync blob and run results."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SyncStatus = Literal["idle", "syncing", "success", "error"]


class SyncedCourse(BaseModel):
    """A Classroom course that has been materialized into a local list."""

    model_config = ConfigDict(populate_by_name=True)

    id: str  # Classroom course id
    name: str  # Course name at import time
    list_id: str = Field(alias="listId")


class SyncState(BaseModel):
    """Owner-scoped reconciliation state, persisted as one blob."""

    synced_courses: list[SyncedCourse] = Field(default_factory=list)
    imported_coursework_ids: set[str] = Field(default_factory=set)
    last_sync_at: datetime | None = None


class SyncResult(BaseModel):
    """Outcome of a single ``sync_now`` call."""

    new_tasks: int = 0
    updated_courses: int = 0
    error: str | None = None
    skipped: bool = False  # True when another run was already in progress
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None
