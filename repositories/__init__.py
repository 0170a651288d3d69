# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Database access layer
# PURPOSE: Stale lock queries, content unlock and cluster view
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Provides the store and cluster collaborators used by the reclamation core.
PostgreSQL access uses psycopg3 async with connection pooling; an in-memory
store implements the same contract for local runs.

Usage:
    from repositories import init_pool, postgres_session_factory

    pool = await init_pool()
    open_session = postgres_session_factory(pool)
    async with open_session() as session:
        page = await session.query_stale_locks(cutoff, limit=1000)
"""

from .database import init_pool, close_pool
from .content_repo import ContentLockRepository, postgres_session_factory
from .cluster_repo import ClusterMembershipRepository, StaticClusterMembership
from .memory import InMemoryContentStore, InMemorySession

__all__ = [
    "init_pool",
    "close_pool",
    "ContentLockRepository",
    "postgres_session_factory",
    "ClusterMembershipRepository",
    "StaticClusterMembership",
    "InMemoryContentStore",
    "InMemorySession",
]
