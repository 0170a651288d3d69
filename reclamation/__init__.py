# ============================================================================
# RECLAMATION MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Stale lock reclamation
# PURPOSE: Export the run and its components
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from .outcomes import (
    ElectionError,
    ScanError,
    ReclaimError,
    Cancelled,
    RunFailure,
    ScanPage,
    ReclaimOutcome,
)
from .throttle import ThrottleController
from .scanner import LockScanner
from .executor import ReclaimExecutor
from .elector import LeaderElector
from .run import ReclamationRun, RunCollaborators, make_run_job

__all__ = [
    # Outcomes
    "ElectionError",
    "ScanError",
    "ReclaimError",
    "Cancelled",
    "RunFailure",
    "ScanPage",
    "ReclaimOutcome",
    # Components
    "ThrottleController",
    "LockScanner",
    "ReclaimExecutor",
    "LeaderElector",
    # Run
    "ReclamationRun",
    "RunCollaborators",
    "make_run_job",
]
