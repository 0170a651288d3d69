# ============================================================================
# RECLAMATION RUN MODELS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Run configuration and run result
# PURPOSE: Immutable inputs and outputs of one reclamation run
# CREATED: 19 OCT 2026
# ============================================================================
"""
Reclamation Run Models

RunConfiguration is built once from a ConfigSource and handed to every
run. RunResult is the frozen summary a run returns; while the run is in
progress the counters live on a private tally owned by ReclamationRun.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from core.contracts import RunStatus


class RunConfiguration(BaseModel):
    """Immutable parameters for a reclamation run."""

    unlock_after_seconds: int = Field(
        default=86400, ge=0, description="Lock age threshold (UNLOCK_AFTER_SECONDS)"
    )
    batch_size: int = Field(
        default=1000, gt=0, description="Page size (SQL_LIMIT_CLAUSE)"
    )
    throttle_delay: timedelta = Field(
        default=timedelta(milliseconds=50),
        description="Pause after each release (THREAD_SLEEP_BETWEEN_UNLOCKS)",
    )
    max_iterations: int = Field(
        default=1000, gt=0, description="Hard cap on pages scanned per run"
    )
    cron_expression: Optional[str] = Field(
        default=None, description="Schedule for the hosting scheduler"
    )

    model_config = {"frozen": True}

    @field_validator("throttle_delay")
    @classmethod
    def validate_throttle_delay(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("throttle_delay must be non-negative")
        return v

    def cutoff(self, now: datetime) -> datetime:
        """Locks acquired strictly before this instant are stale."""
        return now - timedelta(seconds=self.unlock_after_seconds)


class RunError(BaseModel):
    """Tag and message of the error that ended or shaped a run."""

    kind: str
    message: str

    model_config = {"frozen": True}


class RunResult(BaseModel):
    """Summary of one reclamation run. Frozen once returned."""

    run_id: str
    status: RunStatus
    items_reclaimed: int = 0
    items_failed: int = 0
    batches_scanned: int = 0
    cutoff: Optional[datetime] = None
    started_at: datetime
    finished_at: datetime
    iteration_cap_reached: bool = False
    error: Optional[RunError] = None
    failed_handles: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @computed_field
    @property
    def duration_ms(self) -> float:
        return round((self.finished_at - self.started_at).total_seconds() * 1000, 2)


__all__ = ["RunConfiguration", "RunError", "RunResult"]
