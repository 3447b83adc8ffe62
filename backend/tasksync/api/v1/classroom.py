"""Classroom sync endpoints.

POST /api/v1/classroom/sync   — run one reconciliation now
GET  /api/v1/classroom/status — engine + scheduler status
"""

from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException

from tasksync.engines.sync_scheduler import ClassroomSyncScheduler
from tasksync.models.sync import SyncResult
from tasksync.session import OwnerSession

router = APIRouter(prefix="/api/v1/classroom", tags=["classroom"])

# Module-level references, set by main.py at startup
_session: OwnerSession | None = None
_scheduler: ClassroomSyncScheduler | None = None


def set_dependencies(
    session: OwnerSession,
    scheduler: ClassroomSyncScheduler | None = None,
) -> None:
    """Wire up the owner session and scheduler (called from main.py lifespan)."""
    global _session, _scheduler
    _session = session
    _scheduler = scheduler


@router.post("/sync", response_model=SyncResult)
async def sync_classroom(
    x_classroom_token: str | None = Header(default=None),
) -> SyncResult:
    """Import new Classroom coursework for the signed-in owner.

    The bearer token may be passed in ``X-Classroom-Token``; it then replaces
    the token held by the session for later scheduled runs.
    """
    if _session is None:
        raise HTTPException(status_code=503, detail="Classroom sync not initialized.")
    if not _session.is_signed_in:
        raise HTTPException(status_code=409, detail="No owner signed in.")

    if x_classroom_token:
        _session.classroom_token = x_classroom_token
    return await _session.sync_engine.sync_now(_session.classroom_token)


@router.get("/status")
async def classroom_status() -> dict:
    if _session is None:
        raise HTTPException(status_code=503, detail="Classroom sync not initialized.")
    status = _session.sync_engine.get_status()
    status["scheduler"] = _scheduler.get_status() if _scheduler else None
    return status
