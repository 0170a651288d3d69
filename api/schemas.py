# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Response schemas
# PURPOSE: Pydantic models for the reclamation API
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Schemas

Response models for the reclamation API. Runs are reported as the
RunResult model itself.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from core.models import RunResult


class SchedulerStatusResponse(BaseModel):
    """Scheduler state and the most recent run."""
    server_id: str
    scheduler_enabled: bool
    running: bool = False
    busy: bool = False
    cron_expression: Optional[str] = None
    next_fire_at: Optional[datetime] = None
    last_result: Optional[RunResult] = None
    stats: Dict[str, Any] = Field(default_factory=dict)


class RunConfigurationResponse(BaseModel):
    """Effective run parameters."""
    unlock_after_seconds: int
    batch_size: int
    throttle_delay_ms: int
    max_iterations: int
    cron_expression: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None


__all__ = [
    "SchedulerStatusResponse",
    "RunConfigurationResponse",
    "ErrorResponse",
]
