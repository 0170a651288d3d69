# ============================================================================
# THROTTLE CONTROLLER
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Cancellable delay between releases
# PURPOSE: Bound the rate of unlock writes against the content store
# CREATED: 19 OCT 2026
# ============================================================================
"""
Throttle Controller

pause() waits for the configured delay on the run's stop event, so a
shutdown request ends the wait immediately instead of after the delay.
Cancellation is reported upward as a Cancelled value.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from .outcomes import Cancelled

logger = logging.getLogger(__name__)


class ThrottleController:
    """Fixed, cancellable delay between per-record operations."""

    def __init__(
        self,
        delay: timedelta,
        stop_event: Optional[asyncio.Event] = None,
    ):
        if delay < timedelta(0):
            raise ValueError("Throttle delay must be non-negative")
        self.delay = delay
        self.stop_event = stop_event if stop_event is not None else asyncio.Event()
        self.pauses = 0

    @property
    def delay_seconds(self) -> float:
        return self.delay.total_seconds()

    async def pause(self) -> Optional[Cancelled]:
        """
        Block for the throttle delay.

        Returns:
            None after a full delay, Cancelled if a stop was requested or
            the calling task was cancelled while waiting.
        """
        if self.stop_event.is_set():
            return Cancelled("stop_requested")

        try:
            if self.delay_seconds <= 0:
                await asyncio.sleep(0)
            else:
                await asyncio.wait_for(
                    self.stop_event.wait(),
                    timeout=self.delay_seconds,
                )
        except asyncio.TimeoutError:
            pass
        except asyncio.CancelledError:
            logger.info("Throttle pause interrupted by task cancellation")
            return Cancelled("task_cancelled")

        self.pauses += 1

        if self.stop_event.is_set():
            logger.info("Throttle pause interrupted by stop request")
            return Cancelled("stop_requested")
        return None


__all__ = ["ThrottleController"]
