"""Owner session endpoints.

POST   /api/v1/session — sign an owner in (load data, optional start-up sync)
GET    /api/v1/session — who is signed in
DELETE /api/v1/session — sign out, resetting all owner-scoped state
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from tasksync.models.sync import SyncResult
from tasksync.session import OwnerSession

router = APIRouter(prefix="/api/v1", tags=["session"])

_session: OwnerSession | None = None


def set_session(session: OwnerSession) -> None:
    global _session
    _session = session


def _require_session() -> OwnerSession:
    if _session is None:
        raise HTTPException(status_code=503, detail="Session not initialized.")
    return _session


class SignInRequest(BaseModel):
    owner_id: str = Field(min_length=1, max_length=200)
    classroom_token: str | None = None


class SessionResponse(BaseModel):
    owner_id: str | None
    display_name: str = ""
    lists: int = 0
    tasks: int = 0
    startup_sync: SyncResult | None = None


def _describe(session: OwnerSession, startup_sync: SyncResult | None = None) -> SessionResponse:
    return SessionResponse(
        owner_id=session.owner_id,
        display_name=session.profile.display_name if session.profile else "",
        lists=len(session.store.lists),
        tasks=len(session.store.tasks),
        startup_sync=startup_sync,
    )


@router.post("/session", response_model=SessionResponse)
async def sign_in(request: SignInRequest) -> SessionResponse:
    session = _require_session()
    result = await session.sign_in(request.owner_id, request.classroom_token)
    return _describe(session, result)


@router.get("/session", response_model=SessionResponse)
async def current_session() -> SessionResponse:
    return _describe(_require_session())


@router.delete("/session", status_code=204)
async def sign_out() -> Response:
    _require_session().sign_out()
    return Response(status_code=204)
