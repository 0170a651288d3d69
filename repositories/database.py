# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 19 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections to the content platform's database
using psycopg3 and psycopg_pool. One pool per process.

Connection settings come from DATABASE_URL or the individual POSTGRES_*
variables.

Usage:
    from repositories.database import init_pool

    pool = await init_pool()
    async with pool.connection() as conn:
        result = await conn.execute("SELECT 1")
"""

import logging
import os
from typing import Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

# Global pool instance
_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Priority:
    1. DATABASE_URL environment variable
    2. Individual POSTGRES_* components

    Returns:
        PostgreSQL connection string
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "dotcms")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def _safe_conninfo(conninfo: str) -> str:
    """Strip credentials before logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def init_pool(
    min_size: int = 1,
    max_size: int = 4,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    A run holds one connection for its whole duration, so a small pool
    is enough.

    Args:
        min_size: Minimum connections to maintain
        max_size: Maximum connections allowed
        connection_string: Override connection string (defaults to env)

    Returns:
        AsyncConnectionPool instance
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    conninfo = connection_string or get_connection_string()
    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,  # We'll open it explicitly
    )

    await _pool.open()
    logger.info(f"Connection pool opened (min={min_size}, max={max_size})")

    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================
# Tables belong to the content platform; this service reads them and only
# ever writes the lock columns of contentlet_version_info.

TABLE_VERSION_INFO = sql.Identifier("contentlet_version_info")
TABLE_CONTENTLET = sql.Identifier("contentlet")
TABLE_CLUSTER_SERVER = sql.Identifier("cluster_server")
TABLE_SERVER_UPTIME = sql.Identifier("cluster_server_uptime")


__all__ = [
    "get_connection_string",
    "init_pool",
    "close_pool",
    "TABLE_VERSION_INFO",
    "TABLE_CONTENTLET",
    "TABLE_CLUSTER_SERVER",
    "TABLE_SERVER_UPTIME",
]
