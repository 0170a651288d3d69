# ============================================================================
# LOCK SCANNER
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Paginated stale-lock scan
# PURPOSE: Hand out one bounded page of stale locks per call
# CREATED: 19 OCT 2026
# ============================================================================
"""
Lock Scanner

Each next_page() call runs exactly one bounded query. Pages are keyset
paginated on the working inode: the scanner remembers the last handle it
handed out and asks only for handles after it. Released records disappear
from the query anyway; records whose release failed are stepped over
instead of being fed back, so every page makes progress and the run
cannot spin on a poisoned record.
"""

import logging
from datetime import datetime
from typing import List, Optional

from core.contracts import StaleLockQuery
from core.models import StaleLockRecord
from .outcomes import ScanError, ScanPage

logger = logging.getLogger(__name__)


class LockScanner:
    """Bounded, monotonically progressing scan over stale locks."""

    def __init__(self, query: StaleLockQuery):
        self._query = query
        self._cursor: Optional[str] = None
        self.pages_fetched = 0

    @property
    def cursor(self) -> Optional[str]:
        """Last handle handed out, or None before the first page."""
        return self._cursor

    async def next_page(self, cutoff: datetime, batch_size: int) -> ScanPage:
        """
        Fetch the next page of stale locks.

        Args:
            cutoff: Only locks acquired strictly before this are returned
            batch_size: Maximum records in the page

        Returns:
            ScanPage with records (empty when nothing stale remains) or
            a ScanError if the query failed
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        batch = self.pages_fetched + 1
        try:
            fetched = await self._query.query_stale_locks(
                cutoff, batch_size, after=self._cursor
            )
        except Exception as e:
            logger.error(
                f"Stale lock query failed on batch {batch} "
                f"(cutoff={cutoff.isoformat()}, after={self._cursor}): {e}",
                exc_info=True,
            )
            return ScanPage(error=ScanError(message=f"{type(e).__name__}: {e}", batch=batch))

        self.pages_fetched += 1
        fetched = list(fetched)[:batch_size]

        records: List[StaleLockRecord] = []
        for record in fetched:
            if not record.is_stale(cutoff):
                logger.warning(
                    f"Dropping record {record.working_inode} outside the stale "
                    f"window (locked_on={record.locked_on}, locked_by={record.locked_by})"
                )
                continue
            if self._cursor is not None and record.working_inode <= self._cursor:
                logger.warning(
                    f"Dropping record {record.working_inode} already behind "
                    f"the scan cursor {self._cursor}"
                )
                continue
            records.append(record)

        if fetched:
            self._cursor = max(
                [r.working_inode for r in fetched]
                + ([self._cursor] if self._cursor is not None else [])
            )

        return ScanPage(records=records, fetched=len(fetched))


__all__ = ["LockScanner"]
