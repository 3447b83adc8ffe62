"""Shared test fixtures for TaskSync backend tests."""

import os
import sys
from unittest.mock import AsyncMock

import pytest

# Ensure backend is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SYNC_ON_START", "false")
os.environ.setdefault("CLASSROOM_SYNC_ENABLED", "false")

from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from tasksync.db.database import create_db_and_tables
from tasksync.db.gateway import PersistenceGateway
from tasksync.integrations.classroom import (
    ClassroomCourse,
    ClassroomCoursework,
    CourseWithWork,
    DueDate,
)
from tasksync.store.task_store import TaskStore


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    return engine


@pytest.fixture
def gateway(db_engine):
    return PersistenceGateway(db_engine)


@pytest.fixture
def mock_gateway():
    """AsyncMock gateway: every read returns empty, every write succeeds."""
    gw = AsyncMock(spec=PersistenceGateway)
    gw.fetch_lists.return_value = []
    gw.fetch_tasks.return_value = []
    gw.fetch_sync_state.return_value = None
    gw.fetch_profile.return_value = None
    return gw


@pytest.fixture
def store():
    """TaskStore with no gateway (mutations stay in memory)."""
    return TaskStore()


def make_course(course_id: str = "c1", name: str = "Biology 101") -> ClassroomCourse:
    return ClassroomCourse(id=course_id, name=name)


def make_work(
    work_id: str,
    title: str = "Lab report",
    due: tuple[int, int, int] | None = (2026, 11, 3),
    description: str | None = None,
) -> ClassroomCoursework:
    return ClassroomCoursework(
        id=work_id,
        title=title,
        description=description,
        due_date=DueDate(year=due[0], month=due[1], day=due[2]) if due else None,
    )


def make_feed(*courses: tuple[ClassroomCourse, list[ClassroomCoursework]]) -> list[CourseWithWork]:
    return [CourseWithWork(course=c, coursework=works) for c, works in courses]
