# ============================================================================
# RECLAIM EXECUTOR
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Per-record release with fault isolation
# PURPOSE: Resolve one stale lock and release it as the system actor
# CREATED: 19 OCT 2026
# ============================================================================
"""
Reclaim Executor

reclaim() never raises for a per-record problem. Lookup failures,
permission errors, store errors and locks that changed since the scan
all come back as a ReclaimOutcome carrying a ReclaimError, logged with
the offending handle.
"""

import logging

from core.contracts import SYSTEM_ACTOR, ContentAccess
from core.errors import LockChanged
from core.models import LockedContent, StaleLockRecord
from .outcomes import ReclaimError, ReclaimOutcome

logger = logging.getLogger(__name__)


class ReclaimExecutor:
    """Releases stale locks one at a time."""

    def __init__(self, content: ContentAccess, actor: str = SYSTEM_ACTOR):
        self._content = content
        self.actor = actor

    async def reclaim(self, record: StaleLockRecord) -> ReclaimOutcome:
        """
        Release the lock described by record.

        The live content is re-read first. If it is still locked by a
        different holder, or was re-locked after the scan, the release is
        refused with LockChanged. Content that is already unlocked counts
        as released.
        """
        handle = record.working_inode if record is not None else None
        if not handle:
            logger.warning("Skipping stale lock record without a handle")
            return ReclaimOutcome(
                handle=handle,
                error=ReclaimError(handle=handle, message="Record has no handle"),
            )

        try:
            content = await self._content.find(handle, self.actor, bypass_auth=True)
            if _lock_moved(record, content):
                raise LockChanged(handle)
            await self._content.release(content, self.actor, bypass_auth=True)
        except Exception as e:
            logger.warning(
                f"An error occurred unlocking content inode '{handle}': {e}",
                exc_info=True,
            )
            return ReclaimOutcome(
                handle=handle,
                error=ReclaimError(handle=handle, message=f"{type(e).__name__}: {e}"),
            )

        logger.debug(f"Unlocked content inode '{handle}' (was held by {record.locked_by})")
        return ReclaimOutcome(handle=handle)


def _lock_moved(record: StaleLockRecord, content: LockedContent) -> bool:
    if not content.is_locked:
        return False
    return (
        content.locked_by != record.locked_by
        or content.locked_on != record.locked_on
    )


__all__ = ["ReclaimExecutor"]
