# ============================================================================
# DOMAIN MODEL TESTS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Tests - Pydantic models and enums
# PURPOSE: Verify stale lock predicate, run models and cluster ordering
# CREATED: 19 OCT 2026
# ============================================================================
"""
Domain Model Tests

Run with:
    pytest tests/test_models.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.contracts import RunState, RunStatus
from core.models import (
    ClusterNodeInfo,
    LockedContent,
    RunConfiguration,
    RunResult,
    StaleLockRecord,
    oldest_node,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# STALE LOCKS
# ============================================================================

class TestStaleLockRecord:

    def test_naive_timestamp_treated_as_utc(self):
        record = StaleLockRecord(
            working_inode="i-1",
            locked_by="editor",
            locked_on=datetime(2026, 10, 1, 8, 0),
        )
        assert record.locked_on.tzinfo == timezone.utc
        assert record.handle == "i-1"

    def test_is_stale_strictly_before_cutoff(self):
        record = StaleLockRecord(working_inode="i-1", locked_by="editor", locked_on=NOW)

        assert record.is_stale(NOW + timedelta(seconds=1))
        assert not record.is_stale(NOW)
        assert not record.is_stale(NOW - timedelta(seconds=1))

    def test_locked_by_required(self):
        with pytest.raises(ValidationError):
            StaleLockRecord(working_inode="i-1", locked_by=None, locked_on=NOW)

    def test_frozen(self):
        record = StaleLockRecord(working_inode="i-1", locked_by="editor", locked_on=NOW)
        with pytest.raises(ValidationError):
            record.locked_by = "someone-else"

    def test_locked_content_state(self):
        assert LockedContent(inode="i-1", locked_by="editor", locked_on=NOW).is_locked
        assert not LockedContent(inode="i-1").is_locked


# ============================================================================
# RUN MODELS
# ============================================================================

class TestRunConfiguration:

    def test_cutoff(self):
        config = RunConfiguration(unlock_after_seconds=3600)
        assert config.cutoff(NOW) == NOW - timedelta(hours=1)

    def test_zero_age_cutoff_is_now(self):
        assert RunConfiguration(unlock_after_seconds=0).cutoff(NOW) == NOW

    @pytest.mark.parametrize("field,value", [
        ("batch_size", 0),
        ("max_iterations", 0),
        ("unlock_after_seconds", -1),
        ("throttle_delay", timedelta(milliseconds=-1)),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            RunConfiguration(**{field: value})


class TestRunResult:

    def test_duration_ms(self):
        result = RunResult(
            run_id="r1",
            status=RunStatus.COMPLETED,
            started_at=NOW,
            finished_at=NOW + timedelta(milliseconds=1500),
        )
        assert result.duration_ms == 1500.0
        assert result.model_dump(mode="json")["status"] == "completed"

    def test_status_from_terminal_state(self):
        assert RunStatus.from_state(RunState.COMPLETED) == RunStatus.COMPLETED
        assert RunStatus.from_state(RunState.SKIPPED_NOT_LEADER).value == "skipped-not-leader"
        assert RunStatus.from_state(RunState.ABORTED) == RunStatus.ABORTED

    def test_status_from_non_terminal_state_rejected(self):
        with pytest.raises(ValueError):
            RunStatus.from_state(RunState.SCANNING)

    def test_terminal_states(self):
        assert RunState.COMPLETED.is_terminal()
        assert RunState.ABORTED.is_terminal()
        assert RunState.SKIPPED_NOT_LEADER.is_terminal()
        assert not RunState.ELECTION_PENDING.is_terminal()


# ============================================================================
# CLUSTER
# ============================================================================

class TestClusterOrdering:

    def test_lowest_epoch_is_oldest(self):
        nodes = [
            ClusterNodeInfo(node_id="b", epoch=NOW),
            ClusterNodeInfo(node_id="a", epoch=NOW + timedelta(minutes=5)),
        ]
        assert oldest_node(nodes).node_id == "b"

    def test_tie_broken_by_node_id(self):
        nodes = [
            ClusterNodeInfo(node_id="zeta", epoch=10),
            ClusterNodeInfo(node_id="alpha", epoch=10),
        ]
        assert oldest_node(nodes).node_id == "alpha"

    def test_empty_view(self):
        assert oldest_node([]) is None
