"""Tests for the one-off sync CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_course, make_feed, make_work

import tasksync.db.database as database
from tasksync.cli.sync_cli import run_sync


@pytest.mark.asyncio
async def test_run_sync_imports_and_persists(monkeypatch, db_engine, gateway):
    monkeypatch.setattr(database, "engine", db_engine)
    feed = make_feed((make_course("c1", "Biology 101"), [make_work("w1", "Lab report")]))

    with patch(
        "tasksync.integrations.classroom.ClassroomClient.fetch_all",
        new=AsyncMock(return_value=feed),
    ):
        result = await run_sync("owner-1", "tok")

    assert result["new_tasks"] == 1
    assert result["error"] is None
    assert [t.title for t in await gateway.fetch_tasks("owner-1")] == ["Lab report"]
    assert (await gateway.fetch_sync_state("owner-1")).imported_coursework_ids == {"c1:w1"}


@pytest.mark.asyncio
async def test_run_sync_reports_missing_token(monkeypatch, db_engine):
    monkeypatch.setattr(database, "engine", db_engine)

    result = await run_sync("owner-1", "")

    assert result["new_tasks"] == 0
    assert "sign in again" in result["error"]
