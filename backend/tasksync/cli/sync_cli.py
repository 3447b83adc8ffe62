"""CLI entry point for a one-off Classroom sync.

Usage:
    cd backend && uv run python -m tasksync.cli.sync_cli --owner <owner id> --token <bearer token>

Signs the owner in, runs one reconciliation, waits for queued writes and
prints the SyncResult as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from tasksync.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def run_sync(owner_id: str, token: str) -> dict:
    """Sync one owner's Classroom coursework into their stored tasks.

    Args:
        owner_id: Owner whose lists and tasks are updated.
        token: Google bearer token with Classroom read scopes.

    Returns:
        SyncResult as a dict.
    """
    from tasksync.db.database import create_db_and_tables
    from tasksync.db.gateway import PersistenceGateway
    from tasksync.engines.classroom_sync import ClassroomSyncEngine
    from tasksync.integrations.classroom import ClassroomClient
    from tasksync.session import OwnerSession
    from tasksync.store.task_store import TaskStore

    create_db_and_tables()
    gateway = PersistenceGateway()
    store = TaskStore(gateway)
    engine = ClassroomSyncEngine(store, ClassroomClient(), gateway)
    session = OwnerSession(store, engine, gateway, sync_on_start=False)

    await session.sign_in(owner_id, token)
    result = await engine.sync_now(token)
    await store.flush()
    return result.model_dump(mode="json")


def main() -> None:
    parser = argparse.ArgumentParser(description="TaskSync Classroom import")
    parser.add_argument("--owner", required=True, help="Owner id")
    parser.add_argument("--token", "-t", required=True, help="Google bearer token")
    parser.add_argument("--output", "-o", help="Output JSON file path")
    args = parser.parse_args()

    logger.info("Starting Classroom sync for owner %s", args.owner)

    result = asyncio.run(run_sync(args.owner, args.token))

    if args.output:
        with open(args.output, "w") as f:
            json.dump(result, f, indent=2, default=str)
        logger.info("Results written to %s", args.output)
    else:
        print(json.dumps(result, indent=2, default=str))

    if result.get("error"):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
