# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP surface for probes and the reclamation job
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the timed unlock service.
"""

from .routes import router, health_router, set_services
from .schemas import (
    SchedulerStatusResponse,
    RunConfigurationResponse,
    ErrorResponse,
)

__all__ = [
    "router",
    "health_router",
    "set_services",
    "SchedulerStatusResponse",
    "RunConfigurationResponse",
    "ErrorResponse",
]
