"""OwnerSession — loads and discards everything scoped to the signed-in owner.

The store and sync engine are constructed once and passed in; signing in fills
them with the owner's data, signing out (or switching owner) resets both.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tasksync.config import settings

if TYPE_CHECKING:
    from tasksync.db.gateway import PersistenceGateway
    from tasksync.engines.classroom_sync import ClassroomSyncEngine
    from tasksync.models.records import ProfileRecord
    from tasksync.models.sync import SyncResult
    from tasksync.store.task_store import TaskStore

logger = logging.getLogger(__name__)


class OwnerSession:
    def __init__(
        self,
        store: TaskStore,
        sync_engine: ClassroomSyncEngine,
        gateway: PersistenceGateway | None = None,
        sync_on_start: bool | None = None,
    ) -> None:
        self.store = store
        self.sync_engine = sync_engine
        self._gateway = gateway
        self._sync_on_start = settings.sync_on_start if sync_on_start is None else sync_on_start
        self.owner_id: str | None = None
        self.profile: ProfileRecord | None = None
        self.classroom_token: str | None = None

    @property
    def is_signed_in(self) -> bool:
        return self.owner_id is not None

    def token(self) -> str | None:
        """Token provider for the sync scheduler."""
        return self.classroom_token

    async def sign_in(self, owner_id: str, classroom_token: str | None = None) -> SyncResult | None:
        """Load the owner's data and sync state, then optionally sync once.

        Returns the start-up SyncResult, or None when no sync was run.
        """
        if self.owner_id is not None and self.owner_id != owner_id:
            self.sign_out()

        self.owner_id = owner_id
        self.classroom_token = classroom_token
        if self._gateway is not None:
            try:
                self.profile = await self._gateway.fetch_profile(owner_id)
            except Exception as e:
                logger.error("Failed to load profile for %s: %s", owner_id, e)

        await self.store.load_owner_data(owner_id)
        await self.sync_engine.load_sync_state(owner_id)
        logger.info("Owner %s signed in", owner_id)

        if self._sync_on_start and classroom_token:
            return await self.sync_engine.sync_now(classroom_token)
        return None

    def sign_out(self) -> None:
        if self.owner_id is not None:
            logger.info("Owner %s signed out", self.owner_id)
        self.owner_id = None
        self.profile = None
        self.classroom_token = None
        self.store.reset()
        self.sync_engine.clear_state()
