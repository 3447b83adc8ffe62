"""Health check endpoint.

Checks: SQLite DB, Classroom feed configuration, sync engine and scheduler state.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from tasksync.config import settings
from tasksync.engines.classroom_sync import ClassroomSyncEngine
from tasksync.engines.sync_scheduler import ClassroomSyncScheduler

router = APIRouter()

VERSION = "0.1.0"

_engine: ClassroomSyncEngine | None = None
_scheduler: ClassroomSyncScheduler | None = None


def set_dependencies(
    engine: ClassroomSyncEngine | None,
    scheduler: ClassroomSyncScheduler | None,
) -> None:
    global _engine, _scheduler
    _engine = engine
    _scheduler = scheduler


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    dependencies: dict[str, str]
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    checks: dict[str, dict] = {}
    overall_healthy = True
    has_warning = False

    # 1. SQLite DB
    try:
        from sqlalchemy import text

        from tasksync.db.database import engine

        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            if engine.url.get_backend_name() == "sqlite":
                wal = conn.execute(text("PRAGMA journal_mode")).fetchone()
                checks["database"] = {"status": "ok", "detail": f"journal_mode={wal[0]}"}
            else:
                checks["database"] = {"status": "ok", "detail": engine.url.get_backend_name()}
    except Exception as e:
        checks["database"] = {"status": "error", "detail": str(e)}
        overall_healthy = False

    # 2. Classroom feed (config only, no network call)
    checks["classroom_api"] = {"status": "ok", "detail": settings.classroom_base_url}

    # 3. Sync engine
    if _engine is None:
        checks["classroom_sync"] = {"status": "warning", "detail": "not initialized"}
        has_warning = True
    elif _engine.status == "error":
        checks["classroom_sync"] = {"status": "warning", "detail": _engine.sync_error or "last sync failed"}
        has_warning = True
    else:
        last = _engine.last_sync_at.isoformat() if _engine.last_sync_at else "never"
        checks["classroom_sync"] = {"status": "ok", "detail": f"{_engine.status}, last sync {last}"}

    # 4. Scheduler (informational, never unhealthy)
    if _scheduler is None or not settings.classroom_sync_enabled:
        checks["scheduler"] = {
            "status": "disabled",
            "detail": "set CLASSROOM_SYNC_ENABLED=true to sync on an interval",
        }
    else:
        sched = _scheduler.get_status()
        checks["scheduler"] = {
            "status": "ok" if sched["running"] else "warning",
            "detail": f"every {sched['interval_minutes']:.0f} min, {sched['runs']} runs",
        }
        if not sched["running"]:
            has_warning = True

    dependencies = {name: check["status"] for name, check in checks.items()}

    if overall_healthy:
        status = "degraded" if has_warning else "healthy"
    else:
        status = "unhealthy"

    return HealthStatus(
        status=status,
        version=VERSION,
        checks=checks,
        dependencies=dependencies,
        timestamp=datetime.now(timezone.utc),
    )
