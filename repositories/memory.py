# ============================================================================
# IN-MEMORY CONTENT STORE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Process-local StoreSession backend
# PURPOSE: Run the unlock job without a database (local dev, tests)
# CREATED: 19 OCT 2026
# ============================================================================
"""
In-Memory Content Store

Same contract and semantics as the PostgreSQL repository:
keyset-paginated stale-lock query ordered by working inode, find() by
inode, release() conditional on the lock being unchanged.

Selected with STORE_BACKEND=memory.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

from core.contracts import SYSTEM_ACTOR
from core.errors import ContentNotFound, LockChanged, PermissionDenied
from core.models import LockedContent, StaleLockRecord

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    inode: str
    identifier: Optional[str]
    lang: Optional[int]
    locked_by: Optional[str]
    locked_on: Optional[datetime]


class InMemoryContentStore:
    """Dict-backed content lock table."""

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self.sessions_opened = 0
        self.sessions_closed = 0

    # ------------------------------------------------------------------
    # Data setup
    # ------------------------------------------------------------------

    def add(
        self,
        inode: str,
        locked_by: Optional[str] = None,
        locked_on: Optional[datetime] = None,
        identifier: Optional[str] = None,
        lang: Optional[int] = 1,
    ) -> None:
        """Insert or replace a content entry."""
        if locked_on is not None and locked_on.tzinfo is None:
            locked_on = locked_on.replace(tzinfo=timezone.utc)
        self._entries[inode] = _Entry(
            inode=inode,
            identifier=identifier or f"id-{inode}",
            lang=lang,
            locked_by=locked_by,
            locked_on=locked_on,
        )

    def remove(self, inode: str) -> None:
        self._entries.pop(inode, None)

    def is_locked(self, inode: str) -> bool:
        entry = self._entries.get(inode)
        return entry is not None and entry.locked_by is not None

    def locked_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.locked_by is not None)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @property
    def open_sessions(self) -> int:
        return self.sessions_opened - self.sessions_closed

    @asynccontextmanager
    async def open_session(self) -> AsyncIterator["InMemorySession"]:
        """SessionFactory for this store."""
        self.sessions_opened += 1
        try:
            yield InMemorySession(self)
        finally:
            self.sessions_closed += 1


class InMemorySession:
    """StoreSession over an InMemoryContentStore."""

    def __init__(self, store: InMemoryContentStore):
        self.store = store

    async def query_stale_locks(
        self,
        cutoff: datetime,
        limit: int,
        after: Optional[str] = None,
    ) -> List[StaleLockRecord]:
        matches = sorted(
            (
                e for e in self.store._entries.values()
                if e.locked_by is not None
                and e.locked_on is not None
                and e.locked_on < cutoff
                and (after is None or e.inode > after)
            ),
            key=lambda e: e.inode,
        )[:limit]

        return [
            StaleLockRecord(
                working_inode=e.inode,
                identifier=e.identifier,
                lang=e.lang,
                locked_by=e.locked_by,
                locked_on=e.locked_on,
            )
            for e in matches
        ]

    async def find(
        self,
        handle: str,
        actor: str = SYSTEM_ACTOR,
        bypass_auth: bool = False,
    ) -> LockedContent:
        entry = self.store._entries.get(handle)
        if entry is None:
            raise ContentNotFound(handle)
        content = LockedContent(
            inode=entry.inode,
            identifier=entry.identifier,
            lang=entry.lang,
            locked_by=entry.locked_by,
            locked_on=entry.locked_on,
        )
        _check_permission(content, actor, bypass_auth)
        return content

    async def release(
        self,
        content: LockedContent,
        actor: str = SYSTEM_ACTOR,
        bypass_auth: bool = False,
    ) -> None:
        _check_permission(content, actor, bypass_auth)
        if not content.is_locked:
            return

        entry = self.store._entries.get(content.inode)
        if (
            entry is None
            or entry.locked_by != content.locked_by
            or entry.locked_on != content.locked_on
        ):
            raise LockChanged(content.inode)
        entry.locked_by = None
        entry.locked_on = datetime.now(timezone.utc)
        logger.debug(f"Unlocked content {content.inode}")


def _check_permission(content: LockedContent, actor: str, bypass_auth: bool) -> None:
    if bypass_auth or actor == SYSTEM_ACTOR:
        return
    if content.locked_by is not None and content.locked_by != actor:
        raise PermissionDenied(content.inode, actor, content.locked_by)


__all__ = ["InMemoryContentStore", "InMemorySession"]
