"""TaskSync FastAPI Application.

Entry point for the backend server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasksync.api.health import router as health_router
from tasksync.api.health import set_dependencies as set_health_deps
from tasksync.api.v1.classroom import router as classroom_router
from tasksync.api.v1.classroom import set_dependencies as set_classroom_deps
from tasksync.api.v1.preferences import router as preferences_router
from tasksync.api.v1.preferences import set_dependencies as set_preferences_deps
from tasksync.api.v1.session import router as session_router
from tasksync.api.v1.session import set_session
from tasksync.api.v1.tasks import router as tasks_router
from tasksync.api.v1.tasks import set_store
from tasksync.config import settings
from tasksync.db.database import create_db_and_tables
from tasksync.db.gateway import PersistenceGateway
from tasksync.engines.classroom_sync import ClassroomSyncEngine
from tasksync.engines.sync_scheduler import ClassroomSyncScheduler
from tasksync.integrations.classroom import ClassroomClient
from tasksync.middleware.auth import APIKeyAuthMiddleware
from tasksync.preferences.hidden_lists import HiddenListPreferences
from tasksync.session import OwnerSession
from tasksync.store.task_store import TaskStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    create_db_and_tables()

    gateway = PersistenceGateway()
    store = TaskStore(gateway)
    sync_engine = ClassroomSyncEngine(store, ClassroomClient(), gateway)
    session = OwnerSession(store, sync_engine, gateway)
    preferences = HiddenListPreferences(settings.hidden_lists_path)

    scheduler = ClassroomSyncScheduler(
        engine=sync_engine,
        token_provider=session.token,
        interval_minutes=settings.classroom_sync_interval_minutes,
        enabled=settings.classroom_sync_enabled,
    )

    # Wire up API modules
    set_store(store)
    set_session(session)
    set_classroom_deps(session, scheduler)
    set_preferences_deps(preferences, store)
    set_health_deps(sync_engine, scheduler)

    await scheduler.start()
    logger.info("TaskSync started")

    yield

    # Shutdown: stop the scheduler, then let queued writes land
    scheduler.stop()
    await store.flush()
    logger.info("TaskSync stopped")


app = FastAPI(
    title="TaskSync",
    description="Personal task manager with Google Classroom import",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (order matters: first added = outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Classroom-Token"],
)
app.add_middleware(APIKeyAuthMiddleware)


# Global exception handler: internal details never reach the client
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# Routes
app.include_router(health_router)
app.include_router(session_router)
app.include_router(tasks_router)
app.include_router(classroom_router)
app.include_router(preferences_router)


@app.get("/")
async def root():
    return {"name": "TaskSync", "version": "0.1.0", "status": "running"}
