"""Google Classroom API client — read-only access to courses and coursework.

Authenticates with an already-issued OAuth bearer token (token acquisition
happens elsewhere). Per-course coursework fetches run concurrently, bounded by
an internal semaphore, and a failing course never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from tasksync.config import settings

logger = logging.getLogger(__name__)


class ClassroomAPIError(Exception):
    """Non-success response from the Classroom API."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Classroom API error ({status_code}): {message}")


# === Wire models ===


class _ClassroomModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DueDate(_ClassroomModel):
    year: int
    month: int
    day: int


class DueTime(_ClassroomModel):
    hours: int = 0
    minutes: int = 0


class ClassroomCourse(_ClassroomModel):
    id: str
    name: str
    section: str | None = None
    course_state: str = Field(default="ACTIVE", alias="courseState")
    alternate_link: str = Field(default="", alias="alternateLink")


class ClassroomCoursework(_ClassroomModel):
    id: str
    course_id: str = Field(default="", alias="courseId")
    title: str
    description: str | None = None
    state: str = "PUBLISHED"
    alternate_link: str = Field(default="", alias="alternateLink")
    due_date: DueDate | None = Field(default=None, alias="dueDate")
    due_time: DueTime | None = Field(default=None, alias="dueTime")
    max_points: float | None = Field(default=None, alias="maxPoints")
    work_type: str = Field(default="ASSIGNMENT", alias="workType")
    creation_time: datetime | None = Field(default=None, alias="creationTime")
    update_time: datetime | None = Field(default=None, alias="updateTime")


class ClassroomSubmission(_ClassroomModel):
    id: str
    coursework_id: str = Field(default="", alias="courseWorkId")
    state: str = "NEW"
    late: bool = False
    assigned_grade: float | None = Field(default=None, alias="assignedGrade")


class CourseWithWork(BaseModel):
    """One course and its published coursework, as returned by ``fetch_all``."""

    course: ClassroomCourse
    coursework: list[ClassroomCoursework] = Field(default_factory=list)
    error: str | None = None  # Set when the coursework fetch failed


def format_due_date(due: DueDate | None) -> str | None:
    """Convert a Classroom due-date structure to ``YYYY-MM-DD``.

    The optional due time is ignored; tasks only carry a calendar date.
    Returns None when there is no due date or it is not a real date.
    """
    if due is None:
        return None
    try:
        return date(due.year, due.month, due.day).isoformat()
    except ValueError:
        logger.warning("Ignoring invalid Classroom due date: %s", due)
        return None


class ClassroomClient:
    """Async client for the Google Classroom REST API.

    Usage:
        client = ClassroomClient()
        for item in await client.fetch_all(token):
            print(item.course.name, len(item.coursework))
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.classroom_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.classroom_timeout
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.classroom_max_concurrency)
        self._transport = transport

    async def _get(self, path: str, token: str, params: Any = None) -> dict:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.get(f"{self.base_url}{path}", headers=headers, params=params)

        if not resp.is_success:
            raise ClassroomAPIError(resp.status_code, self._error_message(resp))
        return resp.json()

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """Best-effort human-readable message from an error response."""
        try:
            message = resp.json().get("error", {}).get("message")
        except (ValueError, AttributeError):
            message = None
        return message or resp.reason_phrase or "request failed"

    async def _get_paged(
        self, path: str, token: str, params: dict[str, Any], items_key: str
    ) -> list[dict]:
        items: list[dict] = []
        page_token: str | None = None
        while True:
            page_params = dict(params)
            if page_token:
                page_params["pageToken"] = page_token
            data = await self._get(path, token, page_params)
            items.extend(data.get(items_key) or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    async def list_active_courses(self, token: str) -> list[ClassroomCourse]:
        """List the authenticated user's ACTIVE courses."""
        raw = await self._get_paged(
            "/courses",
            token,
            {"courseStates": "ACTIVE", "pageSize": settings.classroom_course_page_size},
            "courses",
        )
        return [ClassroomCourse.model_validate(c) for c in raw]

    async def list_published_coursework(self, course_id: str, token: str) -> list[ClassroomCoursework]:
        """List PUBLISHED coursework for a course, earliest due date first."""
        raw = await self._get_paged(
            f"/courses/{course_id}/courseWork",
            token,
            {
                "courseWorkStates": "PUBLISHED",
                "pageSize": settings.classroom_coursework_page_size,
                "orderBy": "dueDate asc",
            },
            "courseWork",
        )
        return [ClassroomCoursework.model_validate(w) for w in raw]

    async def get_my_submissions(
        self, course_id: str, coursework_id: str, token: str
    ) -> list[ClassroomSubmission]:
        """Get the caller's submissions for one coursework item."""
        data = await self._get(
            f"/courses/{course_id}/courseWork/{coursework_id}/studentSubmissions",
            token,
            [("states", s) for s in ("NEW", "CREATED", "TURNED_IN", "RETURNED")],
        )
        return [ClassroomSubmission.model_validate(s) for s in data.get("studentSubmissions") or []]

    async def _fetch_course(self, course: ClassroomCourse, token: str) -> CourseWithWork:
        async with self._semaphore:
            try:
                coursework = await self.list_published_coursework(course.id, token)
            except Exception as e:
                logger.warning("Failed to fetch coursework for %s: %s", course.name, e)
                return CourseWithWork(course=course, error=str(e) or type(e).__name__)
        return CourseWithWork(course=course, coursework=coursework)

    async def fetch_all(self, token: str) -> list[CourseWithWork]:
        """Fetch every active course together with its coursework.

        A failure listing courses propagates. Coursework is fetched for all
        courses in parallel; a course whose fetch fails yields an empty list.
        """
        courses = await self.list_active_courses(token)
        if not courses:
            return []
        return list(await asyncio.gather(*(self._fetch_course(c, token) for c in courses)))
