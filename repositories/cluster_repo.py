# ============================================================================
# CLUSTER MEMBERSHIP REPOSITORY
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Read-only cluster view for leader election
# PURPOSE: Answer "which live server is the oldest" and "who am I"
# CREATED: 19 OCT 2026
# ============================================================================
"""
Cluster Membership Repository

Membership itself (registration, heartbeats) is maintained by the content
platform. This module only reads it:

- ClusterMembershipRepository: live servers from cluster_server_uptime,
  oldest startup first
- StaticClusterMembership: a fixed list of nodes, used for standalone
  deployments and tests
"""

import logging
from typing import List, Optional, Sequence

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import ClusterViewUnavailable
from core.models import ClusterNodeInfo, oldest_node
from .database import TABLE_CLUSTER_SERVER, TABLE_SERVER_UPTIME

logger = logging.getLogger(__name__)


class ClusterMembershipRepository:
    """
    Cluster view backed by the platform's server tables.

    A server counts as live if it sent a heartbeat within
    heartbeat_window_seconds.
    """

    def __init__(
        self,
        pool: AsyncConnectionPool,
        server_id: str,
        heartbeat_window_seconds: int = 180,
    ):
        self.pool = pool
        self._server_id = server_id
        self.heartbeat_window_seconds = heartbeat_window_seconds

    async def list_nodes(self) -> List[ClusterNodeInfo]:
        """
        Get live cluster members.

        Returns:
            Nodes ordered oldest first
        """
        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                    SELECT s.server_id AS node_id,
                           u.startup AS epoch,
                           u.heartbeat
                    FROM {} s
                    JOIN {} u ON u.server_id = s.server_id
                    WHERE u.heartbeat > NOW() - make_interval(secs => %s::double precision)
                    ORDER BY u.startup ASC, s.server_id ASC
                    """).format(TABLE_CLUSTER_SERVER, TABLE_SERVER_UPTIME),
                    (self.heartbeat_window_seconds,),
                )
                rows = await cur.fetchall()

        return [ClusterNodeInfo(**row) for row in rows]

    async def oldest_node_id(self) -> str:
        """
        Get the id of the oldest live server.

        Raises:
            ClusterViewUnavailable: No live server is registered
        """
        oldest = oldest_node(await self.list_nodes())
        if oldest is None:
            raise ClusterViewUnavailable(
                f"No live servers within {self.heartbeat_window_seconds}s"
            )
        return oldest.node_id

    async def local_node_id(self) -> str:
        return self._server_id


class StaticClusterMembership:
    """
    Fixed cluster view.

    With no nodes given, the local node is the whole cluster and always
    the oldest.
    """

    def __init__(
        self,
        local_id: str,
        nodes: Optional[Sequence[ClusterNodeInfo]] = None,
    ):
        self._local_id = local_id
        self.nodes: List[ClusterNodeInfo] = list(nodes) if nodes is not None else [
            ClusterNodeInfo(node_id=local_id, epoch=0)
        ]

    async def list_nodes(self) -> List[ClusterNodeInfo]:
        return sorted(self.nodes, key=ClusterNodeInfo.sort_key)

    async def oldest_node_id(self) -> str:
        oldest = oldest_node(self.nodes)
        if oldest is None:
            raise ClusterViewUnavailable("Cluster view is empty")
        return oldest.node_id

    async def local_node_id(self) -> str:
        return self._local_id


__all__ = ["ClusterMembershipRepository", "StaticClusterMembership"]
