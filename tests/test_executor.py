# ============================================================================
# RECLAIM EXECUTOR TESTS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Tests - Per-record release
# PURPOSE: Verify release as system actor and per-record fault isolation
# CREATED: 19 OCT 2026
# ============================================================================
"""
ReclaimExecutor Tests

Run with:
    pytest tests/test_executor.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from core.contracts import SYSTEM_ACTOR
from core.errors import ContentNotFound, PermissionDenied
from core.models import LockedContent, StaleLockRecord
from reclamation import ReclaimExecutor, ReclaimError
from repositories import InMemoryContentStore

LOCKED_ON = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)


def _record(inode="i-1", locked_by="editor", locked_on=LOCKED_ON):
    return StaleLockRecord(working_inode=inode, locked_by=locked_by, locked_on=locked_on)


def _content(inode="i-1", locked_by="editor", locked_on=LOCKED_ON):
    return LockedContent(inode=inode, locked_by=locked_by, locked_on=locked_on)


class TestReclaimSuccess:

    def test_release_as_system_actor_bypassing_auth(self):
        access = AsyncMock()
        access.find = AsyncMock(return_value=_content())
        access.release = AsyncMock()

        outcome = asyncio.run(ReclaimExecutor(access).reclaim(_record()))

        assert outcome.ok
        assert outcome.handle == "i-1"
        access.find.assert_awaited_once_with("i-1", SYSTEM_ACTOR, bypass_auth=True)
        access.release.assert_awaited_once_with(_content(), SYSTEM_ACTOR, bypass_auth=True)

    def test_already_unlocked_counts_as_released(self):
        store = InMemoryContentStore()
        store.add("i-1", locked_by=None, locked_on=LOCKED_ON)

        async def _run():
            async with store.open_session() as session:
                return await ReclaimExecutor(session).reclaim(_record())

        assert asyncio.run(_run()).ok

    def test_unlocks_in_memory_store(self):
        store = InMemoryContentStore()
        store.add("i-1", locked_by="editor", locked_on=LOCKED_ON)

        async def _run():
            async with store.open_session() as session:
                return await ReclaimExecutor(session).reclaim(_record())

        outcome = asyncio.run(_run())

        assert outcome.ok
        assert not store.is_locked("i-1")


class TestReclaimFailures:

    def test_not_found(self):
        access = AsyncMock()
        access.find = AsyncMock(side_effect=ContentNotFound("i-1"))

        outcome = asyncio.run(ReclaimExecutor(access).reclaim(_record()))

        assert not outcome.ok
        assert isinstance(outcome.error, ReclaimError)
        assert outcome.error.handle == "i-1"
        assert "ContentNotFound" in outcome.error.message
        access.release.assert_not_awaited()

    def test_permission_denied(self):
        access = AsyncMock()
        access.find = AsyncMock(return_value=_content())
        access.release = AsyncMock(side_effect=PermissionDenied("i-1", "system", "editor"))

        outcome = asyncio.run(ReclaimExecutor(access).reclaim(_record()))

        assert not outcome.ok
        assert "PermissionDenied" in outcome.error.message

    def test_relocked_since_scan_is_not_released(self):
        access = AsyncMock()
        access.find = AsyncMock(return_value=_content(
            locked_by="other-editor", locked_on=LOCKED_ON + timedelta(days=2)
        ))

        outcome = asyncio.run(ReclaimExecutor(access).reclaim(_record()))

        assert not outcome.ok
        assert "LockChanged" in outcome.error.message
        access.release.assert_not_awaited()

    def test_missing_handle(self):
        access = AsyncMock()

        outcome = asyncio.run(ReclaimExecutor(access).reclaim(_record(inode="")))

        assert not outcome.ok
        access.find.assert_not_awaited()

    def test_failure_on_one_record_does_not_affect_others(self):
        # Three records, the second one blows up in the store
        access = AsyncMock()
        access.find = AsyncMock(side_effect=lambda handle, actor, bypass_auth: _content(inode=handle))
        access.release = AsyncMock(side_effect=[None, RuntimeError("deadlock"), None])
        executor = ReclaimExecutor(access)

        async def _run():
            return [
                await executor.reclaim(_record(inode=h))
                for h in ("i-1", "i-2", "i-3")
            ]

        outcomes = asyncio.run(_run())

        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[1].error.handle == "i-2"
        assert access.release.await_count == 3
