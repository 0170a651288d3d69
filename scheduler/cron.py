# ============================================================================
# CRON SCHEDULER
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Service - Background trigger for reclamation runs
# PURPOSE: Fire the unlock job on CRON_EXPRESSION, one run at a time
# CREATED: 19 OCT 2026
# ============================================================================
"""
Cron Scheduler

Accepts Quartz expressions (seconds first, optional year, '?', 1-based
day-of-week, "N#k" and "NL") as well as plain 5-field Unix expressions.
Both are normalized to croniter's form, which puts seconds last:

    Quartz  "0 0/30 * ? * MON-FRI"  ->  "0-59/30 * * * MON-FRI 0"
    Unix    "*/30 * * * *"          ->  "*/30 * * * *"

Scheduling rules:
- At most one run is active. A tick that arrives while a run is active
  is skipped and logged.
- Fire times missed while the loop was busy collapse into a single
  immediate fire, after which the schedule realigns.
- stop() sets the shared stop event; the active run sees it at its next
  pause or page boundary.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from croniter import croniter

from core.errors import ConfigurationError, SchedulerBusy
from core.config import CRON_EXPRESSION
from core.logging import ComponentType, get_logger
from core.models import RunResult

logger = get_logger(__name__, ComponentType.SCHEDULER)

RunJob = Callable[[asyncio.Event], Awaitable[RunResult]]

# Upper bound of each Quartz field, used to expand "N/step"
_QUARTZ_FIELD_MAX = (59, 59, 23, 31, 12, 7)
_STEP_FROM = re.compile(r"^(\d+)/(\d+)$")
_DOW_NUMBER = re.compile(r"(?<![/#\d])(\d+)")
_DOW_LAST = re.compile(r"^(\d+)L$", re.IGNORECASE)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _expand_step(token: str, upper: int) -> str:
    # Quartz "5/15" means "from 5 every 15"; croniter wants a range
    match = _STEP_FROM.match(token)
    if match:
        return f"{match.group(1)}-{upper}/{match.group(2)}"
    return token


def _quartz_day_of_week(field: str) -> str:
    # Quartz counts SUN=1..SAT=7, croniter SUN=0..SAT=6
    def shift(value: int) -> str:
        if not 1 <= value <= 7:
            raise ConfigurationError(
                CRON_EXPRESSION, f"day-of-week {value} out of range 1-7"
            )
        return str(value - 1)

    tokens = []
    for token in field.split(","):
        # Quartz "6L" (last Friday) is croniter "L5"
        last = _DOW_LAST.match(token)
        if last:
            tokens.append(f"L{shift(int(last.group(1)))}")
        else:
            tokens.append(_DOW_NUMBER.sub(lambda m: shift(int(m.group(1))), token))
    return ",".join(tokens)


def normalize_cron(expression: str) -> str:
    """
    Translate a Quartz or Unix cron expression into croniter syntax.

    Raises:
        ConfigurationError: Empty expression, wrong field count, a
            year restriction, or anything croniter rejects
    """
    if not expression or not expression.strip():
        raise ConfigurationError(CRON_EXPRESSION, "expression is empty")

    fields = expression.split()

    if len(fields) == 5:
        normalized = " ".join(f.replace("?", "*") for f in fields)
    elif len(fields) in (6, 7):
        if len(fields) == 7:
            year = fields.pop()
            if year not in ("*", "?"):
                raise ConfigurationError(
                    CRON_EXPRESSION, f"year restriction '{year}' is not supported"
                )

        fields = [
            _expand_step(f.replace("?", "*"), upper)
            for f, upper in zip(fields, _QUARTZ_FIELD_MAX)
        ]
        second, minute, hour, day, month, weekday = fields
        weekday = _quartz_day_of_week(weekday)
        normalized = " ".join([minute, hour, day, month, weekday, second])
    else:
        raise ConfigurationError(
            CRON_EXPRESSION,
            f"expected 5, 6 or 7 fields, got {len(fields)} in '{expression}'",
        )

    try:
        croniter(normalized, _utc_now())
    except Exception as e:
        raise ConfigurationError(
            CRON_EXPRESSION, f"'{expression}' is not a valid cron expression: {e}"
        ) from e

    return normalized


def next_fire_time(expression: str, after: datetime) -> datetime:
    """
    Next fire time strictly after the given instant.

    Args:
        expression: Quartz or Unix cron expression
        after: Reference instant (naive values are treated as UTC)
    """
    if after.tzinfo is None:
        after = after.replace(tzinfo=timezone.utc)
    return croniter(normalize_cron(expression), after).get_next(datetime)


class CronScheduler:
    """
    Runs an async job on a cron schedule in a background task.

    The job is called with the scheduler's stop event and must return a
    RunResult.
    """

    def __init__(
        self,
        expression: str,
        job: RunJob,
        stop_event: Optional[asyncio.Event] = None,
        clock: Optional[Callable[[], datetime]] = None,
        stop_grace_seconds: float = 30.0,
    ):
        self.expression = expression
        self.normalized = normalize_cron(expression)
        self._job = job
        self.stop_event = stop_event if stop_event is not None else asyncio.Event()
        self._clock = clock or _utc_now
        self.stop_grace_seconds = stop_grace_seconds

        self._run_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._started_at: Optional[datetime] = None
        self._next_fire_at: Optional[datetime] = None
        self._last_result: Optional[RunResult] = None
        self._last_fired_at: Optional[datetime] = None

        self._runs = 0
        self._skipped = 0
        self._misfires = 0
        self._failures = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the background schedule loop."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self._started_at = self._clock()
        self.stop_event.clear()
        self._next_fire_at = self._next_after(self._started_at)

        self._task = asyncio.create_task(self._loop(), name="unlock-scheduler")
        logger.info(
            f"Scheduler started (cron='{self.expression}', "
            f"next_fire_at={self._next_fire_at.isoformat()})"
        )

    async def stop(self, grace_seconds: Optional[float] = None) -> None:
        """
        Stop the loop, letting an active run wind down.

        The run observes the stop event at its next pause. If it has not
        finished within the grace period the loop task is cancelled.
        """
        grace = self.stop_grace_seconds if grace_seconds is None else grace_seconds
        logger.info(f"Stopping scheduler (busy={self.is_busy}, grace={grace}s)")

        self._running = False
        self.stop_event.set()

        task, self._task = self._task, None
        if task is not None:
            done, _ = await asyncio.wait({task}, timeout=grace)
            if not done:
                logger.warning("Active run did not stop within grace period, cancelling")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._next_fire_at = None
        logger.info(
            f"Scheduler stopped (runs={self._runs}, skipped={self._skipped}, "
            f"misfires={self._misfires}, failures={self._failures})"
        )

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    async def trigger(self) -> RunResult:
        """
        Run the job now, outside the schedule.

        Raises:
            SchedulerBusy: A run is already active
        """
        if self._run_lock.locked():
            self._skipped += 1
            raise SchedulerBusy()
        async with self._run_lock:
            return await self._run_job("manual")

    async def _loop(self) -> None:
        while self._running and not self.stop_event.is_set():
            delay = (self._next_fire_at - self._clock()).total_seconds()
            if delay > 0:
                try:
                    await asyncio.wait_for(self.stop_event.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass

            scheduled_for = self._next_fire_at
            await self._fire(scheduled_for)

            now = self._clock()
            upcoming = self._next_after(scheduled_for)
            if upcoming <= now:
                self._misfires += 1
                logger.warning(
                    f"Missed fire time {upcoming.isoformat()} while busy, firing once now"
                )
                upcoming = now
            self._next_fire_at = upcoming

        logger.info("Scheduler loop stopped")

    async def _fire(self, scheduled_for: datetime) -> None:
        if self._run_lock.locked():
            self._skipped += 1
            logger.warning(
                f"Skipping tick scheduled for {scheduled_for.isoformat()}: "
                f"a run is already in progress"
            )
            return

        async with self._run_lock:
            try:
                await self._run_job("scheduled")
            except Exception as e:
                self._failures += 1
                logger.error(f"Scheduled unlock run failed: {e}", exc_info=True)

    async def _run_job(self, reason: str) -> RunResult:
        self._runs += 1
        self._last_fired_at = self._clock()
        logger.info(f"Starting {reason} unlock run")
        result = await self._job(self.stop_event)
        self._last_result = result
        return result

    def _next_after(self, instant: datetime) -> datetime:
        return croniter(self.normalized, instant).get_next(datetime)

    # =========================================================================
    # STATS AND PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._run_lock.locked()

    @property
    def next_fire_at(self) -> Optional[datetime]:
        return self._next_fire_at

    @property
    def last_result(self) -> Optional[RunResult]:
        return self._last_result

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "busy": self.is_busy,
            "cron_expression": self.expression,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "next_fire_at": self._next_fire_at.isoformat() if self._next_fire_at else None,
            "last_fired_at": self._last_fired_at.isoformat() if self._last_fired_at else None,
            "runs": self._runs,
            "skipped": self._skipped,
            "misfires": self._misfires,
            "failures": self._failures,
        }


__all__ = ["CronScheduler", "RunJob", "normalize_cron", "next_fire_time"]
