# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import RunState, RunStatus, SYSTEM_ACTOR
from core.errors import (
    ConfigurationError,
    ContentNotFound,
    PermissionDenied,
    LockChanged,
    ClusterViewUnavailable,
    SchedulerBusy,
)
from core.models import (
    StaleLockRecord,
    LockedContent,
    ClusterNodeInfo,
    RunConfiguration,
    RunResult,
)

__all__ = [
    # Enums
    "RunState",
    "RunStatus",
    "SYSTEM_ACTOR",
    # Errors
    "ConfigurationError",
    "ContentNotFound",
    "PermissionDenied",
    "LockChanged",
    "ClusterViewUnavailable",
    "SchedulerBusy",
    # Models
    "StaleLockRecord",
    "LockedContent",
    "ClusterNodeInfo",
    "RunConfiguration",
    "RunResult",
]
