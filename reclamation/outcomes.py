# ============================================================================
# RECLAMATION OUTCOMES
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Tagged error values
# PURPOSE: Errors travel by value from components to ReclamationRun
# CREATED: 19 OCT 2026
# ============================================================================
"""
Reclamation Outcomes

Components never raise into the run loop. Each returns a value, and
ReclamationRun inspects it in one place:

    ElectionError  -> SKIPPED_NOT_LEADER (fail closed)
    ScanError      -> ABORTED at the page boundary
    ReclaimError   -> counted in items_failed, run continues
    Cancelled      -> ABORTED, partial tallies kept
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from core.models import RunError, StaleLockRecord


@dataclass(frozen=True)
class ElectionError:
    message: str
    kind: str = "election_error"


@dataclass(frozen=True)
class ScanError:
    message: str
    batch: int = 0
    kind: str = "scan_error"


@dataclass(frozen=True)
class ReclaimError:
    handle: Optional[str]
    message: str
    kind: str = "reclaim_error"


@dataclass(frozen=True)
class Cancelled:
    reason: str = "stop_requested"
    kind: str = "cancelled"

    @property
    def message(self) -> str:
        return f"Run cancelled ({self.reason})"


RunFailure = Union[ElectionError, ScanError, ReclaimError, Cancelled]


def to_run_error(failure: RunFailure) -> RunError:
    """Flatten a tagged failure for the RunResult."""
    return RunError(kind=failure.kind, message=failure.message)


@dataclass(frozen=True)
class ScanPage:
    """
    One page from the scanner: records, or the error that stopped it.

    fetched counts rows the store returned, including any the scanner
    dropped; the scan is exhausted only when the store returned nothing.
    """
    records: List[StaleLockRecord] = field(default_factory=list)
    error: Optional[ScanError] = None
    fetched: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        if self.error is not None:
            return False
        if self.fetched is not None:
            return self.fetched == 0
        return not self.records


@dataclass(frozen=True)
class ReclaimOutcome:
    """Result of releasing one record."""
    handle: Optional[str]
    error: Optional[ReclaimError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "ElectionError",
    "ScanError",
    "ReclaimError",
    "Cancelled",
    "RunFailure",
    "to_run_error",
    "ScanPage",
    "ReclaimOutcome",
]
