# ============================================================================
# RECLAMATION RUN
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - One scheduled pass over stale locks
# PURPOSE: Elect, scan, release, throttle, summarize
# CREATED: 19 OCT 2026
# ============================================================================
"""
Reclamation Run

One ReclamationRun is one scheduled pass. It owns the run state machine:

    NOT_STARTED -> ELECTION_PENDING -> SCANNING -> COMPLETED
                                    |           -> ABORTED
                                    -> SKIPPED_NOT_LEADER

Components report errors by value (see outcomes.py) and the run decides
what each one means. A store session is opened only after this server
wins the election, and is released on every exit path.

Usage:
    run = ReclamationRun(config, collaborators)
    result = await run.execute()
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from core.contracts import (
    SYSTEM_ACTOR,
    ClusterMembership,
    RunState,
    RunStatus,
    SessionFactory,
    StoreSession,
)
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import RunConfiguration, RunResult
from .elector import LeaderElector
from .executor import ReclaimExecutor
from .outcomes import (
    Cancelled,
    ReclaimOutcome,
    RunFailure,
    ScanError,
    to_run_error,
)
from .scanner import LockScanner
from .throttle import ThrottleController

logger = get_logger(__name__, ComponentType.RECLAMATION)

# Cap on handles kept in RunResult.failed_handles
MAX_REPORTED_FAILURES = 100


_TRANSITIONS: Dict[RunState, tuple] = {
    RunState.NOT_STARTED: (RunState.ELECTION_PENDING,),
    RunState.ELECTION_PENDING: (RunState.SCANNING, RunState.SKIPPED_NOT_LEADER),
    RunState.SCANNING: (RunState.COMPLETED, RunState.ABORTED),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunCollaborators:
    """External services a run talks to."""
    open_session: SessionFactory
    membership: ClusterMembership
    actor: str = SYSTEM_ACTOR
    election_timeout_seconds: Optional[float] = 10.0
    server_id: Optional[str] = None


@dataclass
class _RunTally:
    items_reclaimed: int = 0
    items_failed: int = 0
    batches_scanned: int = 0
    iteration_cap_reached: bool = False
    failed_handles: List[str] = field(default_factory=list)
    failure: Optional[RunFailure] = None

    def record(self, outcome: ReclaimOutcome) -> None:
        if outcome.ok:
            self.items_reclaimed += 1
            return
        self.items_failed += 1
        if outcome.handle and len(self.failed_handles) < MAX_REPORTED_FAILURES:
            self.failed_handles.append(outcome.handle)


class ReclamationRun:
    """A single, single-use reclamation pass."""

    def __init__(
        self,
        config: RunConfiguration,
        collaborators: RunCollaborators,
        stop_event: Optional[asyncio.Event] = None,
        clock: Optional[Callable[[], datetime]] = None,
        elector: Optional[LeaderElector] = None,
    ):
        self.config = config
        self.collaborators = collaborators
        self.stop_event = stop_event if stop_event is not None else asyncio.Event()
        self._clock = clock or _utc_now
        self.elector = elector or LeaderElector(
            collaborators.membership,
            timeout_seconds=collaborators.election_timeout_seconds,
        )

        self.run_id = uuid.uuid4().hex[:12]
        self._state = RunState.NOT_STARTED
        self._tally = _RunTally()
        self._cutoff: Optional[datetime] = None
        self._result: Optional[RunResult] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def result(self) -> Optional[RunResult]:
        return self._result

    @property
    def items_reclaimed(self) -> int:
        return self._tally.items_reclaimed

    @property
    def items_failed(self) -> int:
        return self._tally.items_failed

    def request_stop(self) -> None:
        """Ask the run to stop at the next pause or page boundary."""
        self.stop_event.set()

    def _transition(self, new_state: RunState) -> None:
        allowed = _TRANSITIONS.get(self._state, ())
        if new_state not in allowed:
            raise RuntimeError(
                f"Invalid run transition {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Run state {self._state.value} -> {new_state.value}")
        self._state = new_state

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self) -> RunResult:
        """
        Run the pass to a terminal state.

        Returns:
            Frozen RunResult. Never raises for election, scan or
            per-record failures; those are reported in the result.
        """
        if self._state != RunState.NOT_STARTED:
            raise RuntimeError(f"Run {self.run_id} has already been executed")

        started_at = self._clock()
        self._cutoff = self.config.cutoff(started_at)

        with log_context(
            run_id=self.run_id,
            server_id=self.collaborators.server_id,
            component=ComponentType.RECLAMATION.value,
        ):
            self._transition(RunState.ELECTION_PENDING)
            logger.info(
                f"Timed unlock run starting: cutoff={self._cutoff.isoformat()}, "
                f"batch_size={self.config.batch_size}, "
                f"throttle_ms={int(self.config.throttle_delay.total_seconds() * 1000)}, "
                f"max_iterations={self.config.max_iterations}"
            )
            log_checkpoint("run_started", {"cutoff": self._cutoff.isoformat()})

            if not await self.elector.should_run():
                self._tally.failure = self.elector.last_error
                self._transition(RunState.SKIPPED_NOT_LEADER)
            else:
                self._transition(RunState.SCANNING)
                self._tally.failure = await self._scan()
                if isinstance(self._tally.failure, (ScanError, Cancelled)):
                    logger.warning(f"Timed unlock run aborted: {self._tally.failure.message}")
                    self._transition(RunState.ABORTED)
                else:
                    self._transition(RunState.COMPLETED)

            self._result = self._build_result(started_at)
            self._log_summary(self._result)

        return self._result

    async def _scan(self) -> Optional[RunFailure]:
        try:
            async with self.collaborators.open_session() as session:
                return await self._scan_pages(session)
        except Exception as e:
            logger.error(f"Content store session failed: {e}", exc_info=True)
            return ScanError(message=f"{type(e).__name__}: {e}", batch=self._tally.batches_scanned + 1)

    async def _scan_pages(self, session: StoreSession) -> Optional[RunFailure]:
        scanner = LockScanner(session)
        executor = ReclaimExecutor(session, actor=self.collaborators.actor)
        throttle = ThrottleController(self.config.throttle_delay, self.stop_event)

        for batch in range(1, self.config.max_iterations + 1):
            if self.stop_event.is_set():
                return Cancelled("stop_requested")

            with log_context(batch=batch):
                try:
                    page = await scanner.next_page(self._cutoff, self.config.batch_size)
                except asyncio.CancelledError:
                    logger.warning("Run cancelled while fetching a page")
                    return Cancelled("task_cancelled")
                if page.error is not None:
                    return page.error

                self._tally.batches_scanned += 1
                if page.is_empty:
                    logger.debug("No more stale locks")
                    return None

                logger.info(f"Run # {batch}: found {len(page.records)} contentlets to unlock")
                log_checkpoint("page_fetched", {"records": len(page.records)})

                for record in page.records:
                    with log_context(handle=record.working_inode):
                        outcome, cancelled = await self._reclaim_one(executor, record)
                        self._tally.record(outcome)
                    if cancelled is None:
                        cancelled = await throttle.pause()
                    if cancelled is not None:
                        return cancelled

        self._tally.iteration_cap_reached = True
        logger.warning(
            f"Reached max_iterations={self.config.max_iterations} pages; "
            f"remaining stale locks are left for the next run"
        )
        return None

    async def _reclaim_one(
        self, executor: ReclaimExecutor, record
    ) -> Tuple[ReclaimOutcome, Optional[Cancelled]]:
        # A cancelled task still lets the in-flight record finish
        reclaim = asyncio.ensure_future(executor.reclaim(record))
        try:
            return await asyncio.shield(reclaim), None
        except asyncio.CancelledError:
            logger.warning("Run cancelled mid-record, finishing the current release")
            return await reclaim, Cancelled("task_cancelled")

    def _build_result(self, started_at: datetime) -> RunResult:
        tally = self._tally
        return RunResult(
            run_id=self.run_id,
            status=RunStatus.from_state(self._state),
            items_reclaimed=tally.items_reclaimed,
            items_failed=tally.items_failed,
            batches_scanned=tally.batches_scanned,
            cutoff=self._cutoff,
            started_at=started_at,
            finished_at=self._clock(),
            iteration_cap_reached=tally.iteration_cap_reached,
            error=to_run_error(tally.failure) if tally.failure is not None else None,
            failed_handles=list(tally.failed_handles),
        )

    def _log_summary(self, result: RunResult) -> None:
        log_checkpoint("run_finished", {"status": result.status.value})
        logger.info(
            f"Timed unlock run finished: status={result.status.value}, "
            f"unlocked={result.items_reclaimed}, failed={result.items_failed}, "
            f"batches={result.batches_scanned}, duration_ms={result.duration_ms}",
            extra={
                "status": result.status.value,
                "items_reclaimed": result.items_reclaimed,
                "items_failed": result.items_failed,
                "batches_scanned": result.batches_scanned,
                "iteration_cap_reached": result.iteration_cap_reached,
                "error": result.error.kind if result.error else None,
            },
        )


def make_run_job(
    config: RunConfiguration,
    collaborators: RunCollaborators,
) -> Callable[[asyncio.Event], Awaitable[RunResult]]:
    """
    Build the scheduler job: a fresh ReclamationRun per call, sharing
    the caller's stop event.
    """

    async def run_job(stop_event: asyncio.Event) -> RunResult:
        run = ReclamationRun(config, collaborators, stop_event=stop_event)
        return await run.execute()

    return run_job


__all__ = ["ReclamationRun", "RunCollaborators", "make_run_job", "MAX_REPORTED_FAILURES"]
