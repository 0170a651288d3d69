# ============================================================================
# STRUCTURED LOGGING TESTS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Tests - Log context and formatters
# PURPOSE: Verify per-task context and JSON/human output
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import asyncio
import json
import logging

from core.logging import (
    HumanFormatter,
    StructuredFormatter,
    get_current_context,
    log_context,
)


def _record(msg="hello", extra=None):
    record = logging.LogRecord("reclamation.run", logging.INFO, __file__, 10, msg, None, None)
    if extra is not None:
        record.extra = extra
    return record


class TestLogContext:

    def test_nested_context_merges_and_resets(self):
        with log_context(run_id="r1"):
            with log_context(batch=2, handle="i-9"):
                inner = get_current_context()
            outer = get_current_context()

        assert (inner.run_id, inner.batch, inner.handle) == ("r1", 2, "i-9")
        assert (outer.run_id, outer.batch) == ("r1", None)
        assert get_current_context().run_id is None

    def test_context_isolated_between_tasks(self):
        async def _task(run_id):
            with log_context(run_id=run_id):
                await asyncio.sleep(0.01)
                return get_current_context().run_id

        async def _run():
            return await asyncio.gather(_task("a"), _task("b"))

        assert asyncio.run(_run()) == ["a", "b"]


class TestFormatters:

    def test_json_includes_context_and_data(self):
        with log_context(run_id="r1", batch=3):
            line = StructuredFormatter(include_source=False).format(
                _record(extra={"items_reclaimed": 5})
            )

        data = json.loads(line)
        assert data["message"] == "hello"
        assert data["context"]["run_id"] == "r1"
        assert data["context"]["batch"] == 3
        assert data["data"]["items_reclaimed"] == 5
        assert "source" not in data

    def test_human_shows_run_and_inode(self):
        with log_context(run_id="r1", handle="i-7"):
            line = HumanFormatter().format(_record())

        assert "run=r1" in line
        assert "inode=i-7" in line
        assert line.endswith("reclamation.run [run=r1, inode=i-7]: hello")
