"""Task and list endpoints — thin HTTP layer over the TaskStore mutation API.

GET    /api/v1/workspaces                 — fixed workspaces
GET    /api/v1/lists                      — all lists
POST   /api/v1/lists                      — create a list
DELETE /api/v1/lists/{id}                 — delete a list and its tasks
GET    /api/v1/lists/{id}/board           — tasks partitioned by status
GET    /api/v1/tasks?view=                — all tasks, a virtual list or a list id
POST   /api/v1/tasks                      — create a task
PATCH  /api/v1/tasks/{id}                 — update fields
POST   /api/v1/tasks/{id}/toggle          — flip completion
PUT    /api/v1/tasks/{id}/status          — board-column move
DELETE /api/v1/tasks/{id}                 — delete
GET    /api/v1/matrix                     — urgent/important quadrants
"""

from __future__ import annotations

from datetime import date
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Query, Response
from pydantic import BaseModel, Field

from tasksync.models.task import Label, Priority, Subtask, Task, TaskList, TaskStatus, Workspace
from tasksync.store.task_store import TaskNotFoundError, TaskStore

router = APIRouter(prefix="/api/v1", tags=["tasks"])

# Module-level reference, set by main.py at startup
_store: TaskStore | None = None


def set_store(store: TaskStore) -> None:
    """Wire up the task store (called from main.py lifespan)."""
    global _store
    _store = store


def _require_store() -> TaskStore:
    if _store is None:
        raise HTTPException(status_code=503, detail="Task store not initialized.")
    return _store


# === Request / Response Models ===


class CreateListRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    workspace_id: str = "personal"
    color: str = "#7C3AED"
    icon: str | None = None


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    list_id: str
    description: str | None = None
    status: TaskStatus = "todo"
    priority: Priority = "p4"
    due_date: date | None = None
    labels: list[Label] = Field(default_factory=list)
    subtasks: list[Subtask] = Field(default_factory=list)


class UpdateTaskRequest(BaseModel):
    """Partial update. Only fields present in the request body are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    list_id: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    is_urgent: bool | None = None
    is_important: bool | None = None
    due_date: date | None = None
    is_completed: bool | None = None
    sort_order: int | None = None
    labels: list[Label] | None = None
    subtasks: list[Subtask] | None = None


_CLEARABLE_FIELDS = frozenset({"description", "due_date"})


class StatusRequest(BaseModel):
    status: TaskStatus


# === Endpoints ===


@router.get("/workspaces", response_model=list[Workspace])
async def list_workspaces() -> list[Workspace]:
    return _require_store().workspaces


@router.get("/lists", response_model=list[TaskList])
async def list_lists() -> list[TaskList]:
    return _require_store().lists


@router.post("/lists", response_model=TaskList, status_code=201)
async def create_list(request: CreateListRequest) -> TaskList:
    store = _require_store()
    siblings = [lst for lst in store.lists if lst.workspace_id == request.workspace_id]
    task_list = TaskList(
        id=str(uuid4()),
        sort_order=len(siblings),
        **request.model_dump(),
    )
    store.create_list(task_list)
    return task_list


@router.delete("/lists/{list_id}", status_code=204)
async def delete_list(list_id: str) -> Response:
    if not _require_store().delete_list(list_id):
        raise HTTPException(status_code=404, detail=f"List not found: {list_id}")
    return Response(status_code=204)


@router.get("/lists/{list_id}/board", response_model=dict[str, list[Task]])
async def list_board(list_id: str) -> dict[str, list[Task]]:
    return _require_store().tasks_by_status(list_id)


@router.get("/tasks", response_model=list[Task])
async def list_tasks(
    view: str | None = Query(default=None, description="today | upcoming | completed | <list id>"),
) -> list[Task]:
    store = _require_store()
    if view is None:
        return store.tasks
    return store.tasks_for_list(view)


@router.post("/tasks", response_model=Task, status_code=201)
async def create_task(request: CreateTaskRequest) -> Task:
    store = _require_store()
    if store.get_list(request.list_id) is None:
        raise HTTPException(status_code=404, detail=f"List not found: {request.list_id}")
    fields = request.model_dump(exclude={"title", "list_id"})
    return store.create_task(request.title, request.list_id, **fields)


@router.patch("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, request: UpdateTaskRequest) -> Task:
    # description / due_date may be cleared with null; other fields may not
    changes = {
        k: v for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k in _CLEARABLE_FIELDS
    }
    store = _require_store()
    if "list_id" in changes and store.get_list(changes["list_id"]) is None:
        raise HTTPException(status_code=404, detail=f"List not found: {changes['list_id']}")
    try:
        return store.update_fields(task_id, changes)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/tasks/{task_id}/toggle", response_model=Task)
async def toggle_task(task_id: str) -> Task:
    try:
        return _require_store().toggle_completion(task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/tasks/{task_id}/status", response_model=Task)
async def change_task_status(task_id: str, request: StatusRequest) -> Task:
    try:
        return _require_store().change_status(task_id, request.status)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str) -> Response:
    try:
        _require_store().delete_task(task_id)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.get("/matrix", response_model=dict[str, list[Task]])
async def task_matrix() -> dict[str, list[Task]]:
    return _require_store().matrix()
