"""Device-local preference endpoints.

GET  /api/v1/preferences/hidden-lists             — hidden list ids
POST /api/v1/preferences/hidden-lists/{id}/toggle — hide / unhide a list
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tasksync.preferences.hidden_lists import HiddenListPreferences
from tasksync.store.task_store import TaskStore

router = APIRouter(prefix="/api/v1/preferences", tags=["preferences"])

_preferences: HiddenListPreferences | None = None
_store: TaskStore | None = None


def set_dependencies(preferences: HiddenListPreferences, store: TaskStore) -> None:
    global _preferences, _store
    _preferences = preferences
    _store = store


def _require_preferences() -> HiddenListPreferences:
    if _preferences is None:
        raise HTTPException(status_code=503, detail="Preferences not initialized.")
    return _preferences


class HiddenListsResponse(BaseModel):
    hidden: list[str]


class ToggleResponse(BaseModel):
    list_id: str
    hidden: bool


@router.get("/hidden-lists", response_model=HiddenListsResponse)
async def hidden_lists() -> HiddenListsResponse:
    prefs = _require_preferences()
    # Only prune against real owner data, never against the signed-out defaults
    if _store is not None and _store.owner_id is not None:
        prefs.cleanup(lst.id for lst in _store.lists)
    return HiddenListsResponse(hidden=sorted(prefs.hidden_ids))


@router.post("/hidden-lists/{list_id}/toggle", response_model=ToggleResponse)
async def toggle_hidden_list(list_id: str) -> ToggleResponse:
    hidden = _require_preferences().toggle(list_id)
    return ToggleResponse(list_id=list_id, hidden=hidden)
