# ============================================================================
# CONTENT LOCK REPOSITORY
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Stale lock query and content unlock
# PURPOSE: Database access for contentlet_version_info lock columns
# CREATED: 19 OCT 2026
# ============================================================================
"""
Content Lock Repository

Implements the StoreSession contract on top of one psycopg connection:

- query_stale_locks(): one bounded, keyset-paginated SELECT
- find():              resolve a working inode to its content + lock state
- release():           clear the lock columns, conditional on the lock
                       still being the one that was found

A session owns its connection for the lifetime of a run; see
postgres_session_factory().
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.contracts import SYSTEM_ACTOR
from core.errors import ContentNotFound, LockChanged, PermissionDenied
from core.models import LockedContent, StaleLockRecord
from .database import TABLE_CONTENTLET, TABLE_VERSION_INFO

logger = logging.getLogger(__name__)


class ContentLockRepository:
    """Repository for content lock state, bound to one connection."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    async def query_stale_locks(
        self,
        cutoff: datetime,
        limit: int,
        after: Optional[str] = None,
    ) -> List[StaleLockRecord]:
        """
        Get locks acquired before cutoff, ordered by working inode.

        Args:
            cutoff: Locks with locked_on strictly earlier are returned
            limit: Maximum rows (page size)
            after: Only return working inodes greater than this one

        Returns:
            Up to `limit` StaleLockRecord instances
        """
        params = {"cutoff": cutoff, "limit": limit}
        after_clause = sql.SQL("")
        if after is not None:
            after_clause = sql.SQL("AND working_inode > %(after)s")
            params["after"] = after

        async with self.conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                sql.SQL("""
                SELECT identifier, lang, working_inode, locked_by, locked_on
                FROM {}
                WHERE locked_on < %(cutoff)s
                  AND locked_by IS NOT NULL
                  {}
                ORDER BY working_inode
                LIMIT %(limit)s
                """).format(TABLE_VERSION_INFO, after_clause),
                params,
            )
            rows = await cur.fetchall()

        return [StaleLockRecord(**row) for row in rows]

    async def find(
        self,
        handle: str,
        actor: str = SYSTEM_ACTOR,
        bypass_auth: bool = False,
    ) -> LockedContent:
        """
        Get content and its lock state by working inode.

        Raises:
            ContentNotFound: No contentlet has this inode
            PermissionDenied: Actor may not see a lock held by someone else
        """
        async with self.conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                sql.SQL("""
                SELECT c.inode, c.identifier,
                       COALESCE(vi.lang, c.language_id) AS lang,
                       vi.locked_by, vi.locked_on
                FROM {} c
                LEFT JOIN {} vi ON vi.working_inode = c.inode
                WHERE c.inode = %s
                """).format(TABLE_CONTENTLET, TABLE_VERSION_INFO),
                (handle,),
            )
            row = await cur.fetchone()

        if row is None:
            raise ContentNotFound(handle)

        content = LockedContent(**row)
        self._check_permission(content, actor, bypass_auth)
        return content

    async def release(
        self,
        content: LockedContent,
        actor: str = SYSTEM_ACTOR,
        bypass_auth: bool = False,
    ) -> None:
        """
        Clear the lock on a piece of content.

        The UPDATE only matches while the lock is still the one returned
        by find(), so a lock re-acquired in between is left alone.

        Raises:
            PermissionDenied: Actor does not hold the lock and auth not bypassed
            LockChanged: The lock moved since find()
        """
        self._check_permission(content, actor, bypass_auth)

        if not content.is_locked:
            logger.debug(f"Content {content.inode} already unlocked")
            return

        async with self.conn.transaction():
            result = await self.conn.execute(
                sql.SQL("""
                UPDATE {}
                SET locked_by = NULL,
                    locked_on = NOW()
                WHERE working_inode = %s
                  AND locked_by = %s
                  AND locked_on = %s
                """).format(TABLE_VERSION_INFO),
                (content.inode, content.locked_by, content.locked_on),
            )
            if result.rowcount == 0:
                raise LockChanged(content.inode)

        logger.debug(
            f"Unlocked content {content.inode} "
            f"(held by {content.locked_by} since {content.locked_on})"
        )

    @staticmethod
    def _check_permission(
        content: LockedContent, actor: str, bypass_auth: bool
    ) -> None:
        if bypass_auth or actor == SYSTEM_ACTOR:
            return
        if content.locked_by is not None and content.locked_by != actor:
            raise PermissionDenied(content.inode, actor, content.locked_by)


def postgres_session_factory(pool: AsyncConnectionPool):
    """
    Build a SessionFactory backed by the connection pool.

    Each session checks out one connection in autocommit mode (so every
    release commits on its own) and always returns it to the pool.
    """

    @asynccontextmanager
    async def open_session() -> AsyncIterator[ContentLockRepository]:
        async with pool.connection() as conn:
            await conn.set_autocommit(True)
            # Lock timestamps are stored without zone; read and compare in UTC
            await conn.execute("SET TIME ZONE 'UTC'")
            try:
                yield ContentLockRepository(conn)
            finally:
                if not conn.closed:
                    await conn.set_autocommit(False)

    return open_session


__all__ = ["ContentLockRepository", "postgres_session_factory"]
