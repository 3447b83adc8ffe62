"""Classroom Sync Engine — imports Classroom coursework into the TaskStore exactly once.

One run:
1. Refuse to start while another run is active; refuse without a bearer token.
2. Fetch every active course with its published coursework.
3. For each course (feed order): materialize a list the first time the course
   is seen, then import each coursework item whose ``courseId:courseworkId``
   key has not been imported before.
4. Persist the course mappings, imported keys and sync time as one blob.

All writes to tasks and lists go through the TaskStore mutation API; the
engine itself only persists its own sync-state blob.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from tasksync.integrations.classroom import (
    ClassroomAPIError,
    ClassroomClient,
    ClassroomCourse,
    ClassroomCoursework,
    CourseWithWork,
    format_due_date,
)
from tasksync.models.sync import SyncedCourse, SyncResult, SyncState, SyncStatus
from tasksync.models.task import Task, TaskList

if TYPE_CHECKING:
    from tasksync.db.gateway import PersistenceGateway
    from tasksync.store.task_store import TaskStore

logger = logging.getLogger(__name__)

SUBJECT_COLORS = (
    "#7C3AED", "#3B82F6", "#10B981", "#F59E0B",
    "#EF4444", "#EC4899", "#06B6D4", "#8B5CF6",
)

ACADEMIC_WORKSPACE_ID = "academic"
NO_TOKEN_MESSAGE = "No Google token available. Please sign out and sign in again with Google."
EXPIRED_TOKEN_MESSAGE = "Google token was rejected. Please sign out and sign in again with Google."
IN_PROGRESS_MESSAGE = "Sync already in progress"
OWNER_CHANGED_MESSAGE = "Owner changed during sync; results discarded"


class ClassroomAuthError(Exception):
    """No usable bearer token for the Classroom feed."""


class SyncInProgressError(Exception):
    """A sync run was requested while another one is active."""


def course_list_id(course_id: str) -> str:
    """Stable local list id for a Classroom course."""
    return f"classroom-{course_id}"


def coursework_key(course_id: str, coursework_id: str) -> str:
    return f"{course_id}:{coursework_id}"


def coursework_task_id(course_id: str, coursework_id: str) -> str:
    """Stable local task id for a coursework item."""
    return f"classroom-{course_id}-{coursework_id}"


class ClassroomSyncEngine:
    """Reconciles the Classroom feed into a TaskStore.

    Usage:
        engine = ClassroomSyncEngine(store, ClassroomClient(), gateway)
        await engine.load_sync_state(owner_id)
        result = await engine.sync_now(token)
        print(result.new_tasks, result.updated_courses)
    """

    def __init__(
        self,
        store: TaskStore,
        client: ClassroomClient | None = None,
        gateway: PersistenceGateway | None = None,
    ) -> None:
        self._store = store
        self._client = client or ClassroomClient()
        self._gateway = gateway
        self._is_syncing = False
        self._generation = 0
        self.clear_state()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def clear_state(self) -> None:
        """Forget everything owner-scoped (sign-out / owner switch)."""
        self._generation += 1
        self.status: SyncStatus = "idle"
        self.is_connected = False
        self.sync_error: str | None = None
        self.last_sync_at: datetime | None = None
        self.synced_courses: list[SyncedCourse] = []
        self.imported_coursework_ids: set[str] = set()

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def state(self) -> SyncState:
        return SyncState(
            synced_courses=list(self.synced_courses),
            imported_coursework_ids=set(self.imported_coursework_ids),
            last_sync_at=self.last_sync_at,
        )

    async def load_sync_state(self, owner_id: str) -> None:
        """Load the owner's prior sync state. A missing row means a first sync."""
        self.clear_state()
        if self._gateway is None:
            return
        try:
            saved = await self._gateway.fetch_sync_state(owner_id)
        except Exception as e:
            logger.error("Failed to load classroom sync state for %s: %s", owner_id, e)
            return
        if saved is None:
            return
        self.synced_courses = list(saved.synced_courses)
        self.imported_coursework_ids = set(saved.imported_coursework_ids)
        self.last_sync_at = saved.last_sync_at
        self.is_connected = True

    def get_status(self) -> dict:
        return {
            "status": self.status,
            "is_connected": self.is_connected,
            "is_syncing": self._is_syncing,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
            "sync_error": self.sync_error,
            "synced_courses": [c.model_dump() for c in self.synced_courses],
        }

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    @contextmanager
    def _sync_guard(self) -> Iterator[None]:
        """Hold the single in-progress flag for the duration of one run."""
        if self._is_syncing:
            raise SyncInProgressError(IN_PROGRESS_MESSAGE)
        self._is_syncing = True
        try:
            yield
        finally:
            self._is_syncing = False

    async def sync_now(self, token: str | None) -> SyncResult:
        """Run one reconciliation. Never raises; failures come back in the result."""
        try:
            with self._sync_guard():
                return await self._run(token)
        except SyncInProgressError:
            logger.info("Classroom sync requested while one is running; skipped")
            return SyncResult(skipped=True, error=IN_PROGRESS_MESSAGE)

    def _fail(self, message: str) -> SyncResult:
        self.status = "error"
        self.sync_error = message
        return SyncResult(error=message)

    async def _run(self, token: str | None) -> SyncResult:
        owner_id = self._store.owner_id
        generation = self._generation
        self.status = "syncing"
        self.sync_error = None
        try:
            if not token:
                raise ClassroomAuthError(NO_TOKEN_MESSAGE)
            self.is_connected = True
            feed = await self._client.fetch_all(token)
        except ClassroomAuthError as e:
            logger.warning("Classroom sync aborted: %s", e)
            return self._fail(str(e))
        except ClassroomAPIError as e:
            logger.error("Classroom sync failed: %s", e)
            return self._fail(EXPIRED_TOKEN_MESSAGE if e.status_code == 401 else str(e))
        except Exception as e:
            logger.error("Classroom sync failed: %s", e, exc_info=True)
            return self._fail(str(e) or "Sync failed")

        if generation != self._generation or owner_id != self._store.owner_id:
            # Owner signed out or switched while the feed was in flight
            logger.info("Classroom sync for %s discarded: owner changed during fetch", owner_id)
            return SyncResult(skipped=True, error=OWNER_CHANGED_MESSAGE)

        result = self._reconcile(feed)
        self.last_sync_at = datetime.now(timezone.utc)
        self.status = "success"
        logger.info(
            "Classroom sync complete: %d new tasks, %d new courses, %d warnings",
            result.new_tasks, result.updated_courses, len(result.warnings),
        )
        await self._save_state(owner_id)
        return result

    def _reconcile(self, feed: list[CourseWithWork]) -> SyncResult:
        """Apply the fetched feed to the store. Runs without suspending."""
        result = SyncResult()
        courses = list(self.synced_courses)
        imported = set(self.imported_coursework_ids)

        for item in feed:
            course = item.course
            if item.error:
                result.warnings.append(f"{course.name}: {item.error}")

            synced = next((c for c in courses if c.id == course.id), None)
            if synced is None:
                synced = self._materialize_course(course, color_index=len(courses))
                courses.append(synced)
                result.updated_courses += 1
            elif self._store.get_list(synced.list_id) is None:
                # Mapped list was deleted; bring it back under the same id
                logger.info("Recreating deleted list %s for course %s", synced.list_id, course.name)
                self._materialize_course(course, color_index=courses.index(synced))
                result.updated_courses += 1

            for work in item.coursework:
                key = coursework_key(course.id, work.id)
                if key in imported:
                    continue
                task = self._build_task(course, work, synced.list_id)
                if self._store.import_external_task(task):
                    result.new_tasks += 1
                imported.add(key)

        self.synced_courses = courses
        self.imported_coursework_ids = imported
        return result

    def _materialize_course(self, course: ClassroomCourse, color_index: int) -> SyncedCourse:
        list_id = course_list_id(course.id)
        academic_lists = [lst for lst in self._store.lists if lst.workspace_id == ACADEMIC_WORKSPACE_ID]
        self._store.create_list(
            TaskList(
                id=list_id,
                workspace_id=ACADEMIC_WORKSPACE_ID,
                name=course.name,
                color=SUBJECT_COLORS[color_index % len(SUBJECT_COLORS)],
                sort_order=len(academic_lists),
                is_academic=True,
                course_name=course.name,
            )
        )
        return SyncedCourse(id=course.id, name=course.name, list_id=list_id)

    def _build_task(self, course: ClassroomCourse, work: ClassroomCoursework, list_id: str) -> Task:
        due_date = format_due_date(work.due_date)
        return Task(
            id=coursework_task_id(course.id, work.id),
            list_id=list_id,
            title=work.title,
            description=work.description or f"Assignment from {course.name}",
            status="todo",
            priority="p2" if due_date else "p3",
            due_date=due_date,
            sort_order=self._store.count_tasks(list_id),
            source="classroom",
            created_at=work.creation_time or datetime.now(timezone.utc),
        )

    async def _save_state(self, owner_id: str | None) -> None:
        if self._gateway is None or owner_id is None:
            return
        try:
            await self._gateway.upsert_sync_state(owner_id, self.state)
        except Exception as e:
            logger.error("Failed to save classroom sync state for %s: %s", owner_id, e)
