# ============================================================================
# RECLAMATION RUN TESTS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Tests - End-to-end run over the in-memory store
# PURPOSE: Verify run state machine, pagination, isolation and cancellation
# CREATED: 19 OCT 2026
# ============================================================================
"""
ReclamationRun Tests

Runs use InMemoryContentStore and StaticClusterMembership, so no database
is needed.

Run with:
    pytest tests/test_run.py -v
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from core.contracts import RunState, RunStatus
from core.errors import ContentNotFound
from core.models import ClusterNodeInfo, RunConfiguration
from reclamation import ReclamationRun, RunCollaborators, make_run_job
from reclamation.run import MAX_REPORTED_FAILURES
from repositories import InMemoryContentStore, StaticClusterMembership


# ============================================================================
# HELPERS
# ============================================================================

def _now():
    return datetime.now(timezone.utc)


def _stale_store(count, age=timedelta(days=2)):
    store = InMemoryContentStore()
    locked_on = _now() - age
    for n in range(count):
        store.add(f"inode-{n:05d}", locked_by="editor", locked_on=locked_on)
    return store


def _config(**overrides):
    values = dict(
        unlock_after_seconds=86400,
        batch_size=1000,
        throttle_delay=timedelta(0),
        max_iterations=1000,
    )
    values.update(overrides)
    return RunConfiguration(**values)


def _collaborators(open_session, membership=None, server_id="node-a"):
    return RunCollaborators(
        open_session=open_session,
        membership=membership or StaticClusterMembership(server_id),
        server_id=server_id,
    )


class _FlakySession:
    """Wraps a session and fails release() for selected handles."""

    def __init__(self, inner, fail_on):
        self.inner = inner
        self.fail_on = set(fail_on)

    async def query_stale_locks(self, cutoff, limit, after=None):
        return await self.inner.query_stale_locks(cutoff, limit, after=after)

    async def find(self, handle, actor, bypass_auth=False):
        return await self.inner.find(handle, actor, bypass_auth=bypass_auth)

    async def release(self, content, actor, bypass_auth=False):
        if content.inode in self.fail_on:
            raise RuntimeError("store write failed")
        await self.inner.release(content, actor, bypass_auth=bypass_auth)


class _BrokenQuerySession(_FlakySession):
    """Fails the stale-lock query from the given page on."""

    def __init__(self, inner, fail_from_page):
        super().__init__(inner, ())
        self.fail_from_page = fail_from_page
        self.queries = 0

    async def query_stale_locks(self, cutoff, limit, after=None):
        self.queries += 1
        if self.queries >= self.fail_from_page:
            raise ConnectionError("connection reset")
        return await super().query_stale_locks(cutoff, limit, after=after)


class _VanishingSession(_FlakySession):
    """Content for the given handles disappears between scan and lookup."""

    def __init__(self, inner, missing):
        super().__init__(inner, ())
        self.missing = set(missing)

    async def find(self, handle, actor, bypass_auth=False):
        if handle in self.missing:
            raise ContentNotFound(handle)
        return await super().find(handle, actor, bypass_auth=bypass_auth)


class _SlowReleaseSession(_FlakySession):
    """Each release takes `delay` seconds to complete."""

    def __init__(self, inner, delay):
        super().__init__(inner, ())
        self.delay = delay

    async def release(self, content, actor, bypass_auth=False):
        await asyncio.sleep(self.delay)
        await super().release(content, actor, bypass_auth=bypass_auth)


def _wrapped_factory(store, wrap):
    @asynccontextmanager
    async def open_session():
        async with store.open_session() as session:
            yield wrap(session)

    return open_session


# ============================================================================
# COMPLETED RUNS
# ============================================================================

class TestCompletedRuns:

    def test_paginates_until_empty_page(self):
        store = _stale_store(2500)
        run = ReclamationRun(_config(batch_size=1000), _collaborators(store.open_session))

        result = asyncio.run(run.execute())

        assert result.status == RunStatus.COMPLETED
        assert run.state == RunState.COMPLETED
        assert result.items_reclaimed == 2500
        assert result.items_failed == 0
        assert result.batches_scanned == 4
        assert result.iteration_cap_reached is False
        assert result.error is None
        assert store.locked_count() == 0
        assert store.open_sessions == 0

    def test_nothing_stale(self):
        store = _stale_store(5, age=timedelta(minutes=5))

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(store.open_session)).execute()
        )

        assert result.status == RunStatus.COMPLETED
        assert result.items_reclaimed == 0
        assert result.batches_scanned == 1
        assert store.locked_count() == 5

    def test_iteration_cap(self):
        store = _stale_store(30)
        run = ReclamationRun(
            _config(batch_size=10, max_iterations=2),
            _collaborators(store.open_session),
        )

        result = asyncio.run(run.execute())

        assert result.status == RunStatus.COMPLETED
        assert result.iteration_cap_reached is True
        assert result.batches_scanned == 2
        assert result.items_reclaimed == 20
        assert store.locked_count() == 10

    def test_cutoff_fixed_at_start(self):
        start = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        ticks = iter([start, start + timedelta(seconds=3)])
        store = InMemoryContentStore()
        store.add("old", locked_by="editor", locked_on=start - timedelta(hours=2))
        store.add("recent", locked_by="editor", locked_on=start - timedelta(minutes=30))

        run = ReclamationRun(
            _config(unlock_after_seconds=3600),
            _collaborators(store.open_session),
            clock=lambda: next(ticks),
        )
        result = asyncio.run(run.execute())

        assert result.cutoff == start - timedelta(hours=1)
        assert result.started_at == start
        assert result.duration_ms == 3000.0
        assert result.items_reclaimed == 1
        assert store.is_locked("recent")

    def test_item_failure_is_isolated(self):
        store = _stale_store(5)
        failing = {"inode-00001", "inode-00003"}
        open_session = _wrapped_factory(store, lambda s: _FlakySession(s, failing))

        result = asyncio.run(
            ReclamationRun(_config(batch_size=2), _collaborators(open_session)).execute()
        )

        assert result.status == RunStatus.COMPLETED
        assert result.items_reclaimed == 3
        assert result.items_failed == 2
        assert sorted(result.failed_handles) == sorted(failing)
        assert result.error is None
        assert store.locked_count() == 2

    def test_missing_content_is_counted_and_run_continues(self):
        store = _stale_store(3)
        open_session = _wrapped_factory(
            store, lambda s: _VanishingSession(s, {"inode-00001"})
        )

        result = asyncio.run(
            ReclamationRun(_config(batch_size=3), _collaborators(open_session)).execute()
        )

        assert result.status == RunStatus.COMPLETED
        assert result.items_reclaimed == 2
        assert result.items_failed == 1
        assert result.failed_handles == ["inode-00001"]
        assert result.error is None
        assert not store.is_locked("inode-00002")

    def test_failed_handles_bounded(self):
        count = MAX_REPORTED_FAILURES + 20
        store = _stale_store(count)
        every = {f"inode-{n:05d}" for n in range(count)}
        open_session = _wrapped_factory(store, lambda s: _FlakySession(s, every))

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(open_session)).execute()
        )

        assert result.items_failed == count
        assert len(result.failed_handles) == MAX_REPORTED_FAILURES

    def test_throttle_paces_each_release(self):
        store = _stale_store(10)
        run = ReclamationRun(
            _config(throttle_delay=timedelta(milliseconds=50)),
            _collaborators(store.open_session),
        )

        result = asyncio.run(run.execute())

        assert result.items_reclaimed == 10
        assert result.duration_ms >= 450


# ============================================================================
# SKIPPED RUNS
# ============================================================================

class TestSkippedRuns:

    def test_not_leader_touches_nothing(self):
        store = _stale_store(10)
        nodes = [
            ClusterNodeInfo(node_id="node-a", epoch=1),
            ClusterNodeInfo(node_id="node-b", epoch=2),
        ]
        open_session = MagicMock(side_effect=store.open_session)
        membership = StaticClusterMembership("node-b", nodes)

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(open_session, membership, "node-b")).execute()
        )

        assert result.status == RunStatus.SKIPPED_NOT_LEADER
        assert result.items_reclaimed == 0
        assert result.batches_scanned == 0
        assert result.error is None
        open_session.assert_not_called()
        assert store.locked_count() == 10

    def test_election_failure_skips_with_error(self):
        store = _stale_store(3)
        membership = StaticClusterMembership("node-a", nodes=[])

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(store.open_session, membership)).execute()
        )

        assert result.status == RunStatus.SKIPPED_NOT_LEADER
        assert result.error.kind == "election_error"
        assert store.sessions_opened == 0


# ============================================================================
# ABORTED RUNS
# ============================================================================

class TestAbortedRuns:

    def test_scan_error_aborts_and_keeps_tallies(self):
        store = _stale_store(5)
        open_session = _wrapped_factory(store, lambda s: _BrokenQuerySession(s, 2))

        result = asyncio.run(
            ReclamationRun(_config(batch_size=2), _collaborators(open_session)).execute()
        )

        assert result.status == RunStatus.ABORTED
        assert result.error.kind == "scan_error"
        assert "connection reset" in result.error.message
        assert result.items_reclaimed == 2
        assert result.batches_scanned == 1
        assert store.open_sessions == 0

    def test_session_open_failure_aborts(self):
        @asynccontextmanager
        async def open_session():
            raise ConnectionError("pool exhausted")
            yield  # pragma: no cover

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(open_session)).execute()
        )

        assert result.status == RunStatus.ABORTED
        assert result.error.kind == "scan_error"

    def test_stop_request_aborts_with_partial_tallies(self):
        store = _stale_store(10)
        stop = asyncio.Event()
        run = ReclamationRun(
            _config(throttle_delay=timedelta(milliseconds=50)),
            _collaborators(store.open_session),
            stop_event=stop,
        )

        async def _run():
            asyncio.get_running_loop().call_later(0.12, stop.set)
            return await run.execute()

        result = asyncio.run(_run())

        assert result.status == RunStatus.ABORTED
        assert result.error.kind == "cancelled"
        assert 1 <= result.items_reclaimed < 10
        assert store.locked_count() == 10 - result.items_reclaimed
        assert store.open_sessions == 0

    def test_task_cancel_mid_record_finishes_record_and_aborts(self):
        store = _stale_store(5)
        open_session = _wrapped_factory(store, lambda s: _SlowReleaseSession(s, 0.3))
        run = ReclamationRun(_config(), _collaborators(open_session))

        async def _run():
            task = asyncio.create_task(run.execute())
            await asyncio.sleep(0.1)
            task.cancel()
            return await task

        result = asyncio.run(_run())

        assert run.state == RunState.ABORTED
        assert run.result is result
        assert result.status == RunStatus.ABORTED
        assert result.error.kind == "cancelled"
        assert "task_cancelled" in result.error.message
        assert result.items_reclaimed == 1
        assert store.locked_count() == 4
        assert store.open_sessions == 0

    def test_stop_before_first_page(self):
        store = _stale_store(3)
        stop = asyncio.Event()
        stop.set()

        result = asyncio.run(
            ReclamationRun(_config(), _collaborators(store.open_session), stop_event=stop).execute()
        )

        assert result.status == RunStatus.ABORTED
        assert result.batches_scanned == 0
        assert store.locked_count() == 3


# ============================================================================
# LIFECYCLE
# ============================================================================

class TestRunLifecycle:

    def test_run_is_single_use(self):
        store = _stale_store(1)
        run = ReclamationRun(_config(), _collaborators(store.open_session))

        async def _run():
            await run.execute()
            await run.execute()

        with pytest.raises(RuntimeError):
            asyncio.run(_run())

    def test_run_job_builds_fresh_runs(self):
        store = _stale_store(3)
        job = make_run_job(_config(), _collaborators(store.open_session))

        async def _run():
            stop = asyncio.Event()
            return await job(stop), await job(stop)

        first, second = asyncio.run(_run())

        assert first.run_id != second.run_id
        assert first.items_reclaimed == 3
        assert second.items_reclaimed == 0
        assert store.sessions_opened == 2
