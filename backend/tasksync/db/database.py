"""Database setup — SQLite with WAL mode via SQLModel/SQLAlchemy.

What lives here:
- TaskListRecord, TaskRecord: owner-scoped rows keyed by (id, owner_id)
- ClassroomSyncRecord: one sync-state blob per owner
- ProfileRecord: display data for an owner

The in-memory TaskStore is authoritative during a session; these tables are
the write-through mirror it persists to.
"""

from __future__ import annotations

import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from tasksync.config import settings


def get_database_url() -> str:
    """Get database URL, ensuring the data directory exists."""
    url = settings.database_url
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    return url


@event.listens_for(Engine, "connect")
def set_sqlite_wal(dbapi_connection, connection_record):
    """Enable WAL mode so fire-and-forget writes don't block reads."""
    if "sqlite" not in type(dbapi_connection).__module__:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA busy_timeout=5000")    # 5s wait on lock
    cursor.close()


_url = get_database_url()
engine = create_engine(
    _url,
    echo=False,
    # Sessions run in executor threads
    connect_args={"check_same_thread": False} if _url.startswith("sqlite") else {},
)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """Create all tables defined by SQLModel metadata."""
    import tasksync.models.records  # noqa: F401  (registers table metadata)

    SQLModel.metadata.create_all(bind or engine)
