# ============================================================================
# CLUSTER NODE MODEL
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Cluster membership snapshot
# PURPOSE: Node identity plus the ordering key used for leader election
# CREATED: 19 OCT 2026
# ============================================================================
"""
Cluster Node Model

A node's epoch is its startup instant (or any orderable stand-in for one).
The node with the lowest epoch is the oldest and is the one allowed to run
the unlock job. Ties are broken by node_id so every member picks the same
leader from the same view.
"""

from datetime import datetime
from typing import ClassVar, Iterable, List, Optional, Union

from pydantic import BaseModel, Field


class ClusterNodeInfo(BaseModel):
    """
    Read-only snapshot of one cluster member.

    Table: cluster_server / cluster_server_uptime
    """

    __sql_table__: ClassVar[str] = "cluster_server_uptime"
    __sql_primary_key__: ClassVar[List[str]] = ["server_id"]

    node_id: str = Field(..., max_length=64, description="Server identifier")
    epoch: Union[datetime, float, int] = Field(
        ..., description="Startup ordering key - lower is older"
    )
    heartbeat: Optional[datetime] = Field(
        default=None, description="Last heartbeat seen for this node"
    )

    model_config = {"frozen": True}

    def sort_key(self):
        epoch = self.epoch.timestamp() if isinstance(self.epoch, datetime) else float(self.epoch)
        return (epoch, self.node_id)


def oldest_node(nodes: Iterable[ClusterNodeInfo]) -> Optional[ClusterNodeInfo]:
    """Pick the oldest node, or None for an empty view."""
    ordered = sorted(nodes, key=ClusterNodeInfo.sort_key)
    return ordered[0] if ordered else None


__all__ = ["ClusterNodeInfo", "oldest_node"]
