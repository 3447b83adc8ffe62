"""Classroom Sync Scheduler — periodic background reconciliation.

Runs ClassroomSyncEngine.sync_now on a fixed interval as an asyncio background
task. The bearer token is fetched from a provider callable on every tick, so a
refreshed token is picked up without restarting the scheduler.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tasksync.engines.classroom_sync import ClassroomSyncEngine

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], "str | None | Awaitable[str | None]"]


class ClassroomSyncScheduler:
    """Runs periodic Classroom syncs for the signed-in owner.

    Usage:
        scheduler = ClassroomSyncScheduler(
            engine=sync_engine,
            token_provider=lambda: session.classroom_token,
            interval_minutes=30.0,
        )
        await scheduler.start()
        # ... app runs ...
        scheduler.stop()
    """

    def __init__(
        self,
        engine: ClassroomSyncEngine,
        token_provider: TokenProvider,
        interval_minutes: float = 30.0,
        enabled: bool = True,
    ) -> None:
        self._engine = engine
        self._token_provider = token_provider
        self._interval_seconds = interval_minutes * 60
        self._enabled = enabled
        self._task: asyncio.Task | None = None
        self._running = False
        self.runs = 0

    async def start(self) -> None:
        """Start the scheduler as a background task."""
        if not self._enabled:
            logger.info("Classroom sync scheduler disabled")
            return
        if self._running:
            logger.warning("Classroom sync scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Classroom sync scheduler started (interval: %.1f minutes)",
            self._interval_seconds / 60,
        )

    def stop(self) -> None:
        """Stop the scheduler. A run already in flight is not interrupted mid-write."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            logger.info("Classroom sync scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval_seconds)
                if not self._running:
                    break
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Classroom sync scheduler error: %s", e, exc_info=True)
                await asyncio.sleep(60)  # Back off a minute on error

    async def tick(self) -> None:
        """Run one scheduled sync if an owner token is available."""
        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        if not token:
            logger.debug("Scheduled classroom sync skipped: no token")
            return

        result = await self._engine.sync_now(token)
        self.runs += 1
        if result.skipped:
            logger.debug("Scheduled classroom sync skipped: run already in progress")
        elif result.error:
            logger.warning("Scheduled classroom sync failed: %s", result.error)
        elif result.new_tasks or result.updated_courses:
            logger.info(
                "Scheduled classroom sync: %d new tasks, %d new courses",
                result.new_tasks, result.updated_courses,
            )

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def get_status(self) -> dict:
        """Get scheduler status for health checks."""
        return {
            "enabled": self._enabled,
            "running": self.is_running,
            "interval_minutes": self._interval_seconds / 60,
            "runs": self.runs,
        }
