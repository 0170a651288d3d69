# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the timed unlock service. Tables named in
__sql_table__ belong to the content platform; this service only reads
them and clears lock columns.
"""

from core.models.stale_lock import StaleLockRecord, LockedContent
from core.models.cluster import ClusterNodeInfo, oldest_node
from core.models.run import RunConfiguration, RunError, RunResult

__all__ = [
    # Locks
    "StaleLockRecord",
    "LockedContent",
    # Cluster
    "ClusterNodeInfo",
    "oldest_node",
    # Run
    "RunConfiguration",
    "RunError",
    "RunResult",
]
