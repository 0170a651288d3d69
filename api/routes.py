# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - FastAPI route definitions
# PURPOSE: Probes, run status and manual trigger
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Routes

Endpoints:
    GET  /livez                      - Process alive
    GET  /readyz                     - Scheduler wired (and started, if enabled)
    GET  /api/v1/reclamation/status  - Scheduler state and last RunResult
    GET  /api/v1/reclamation/config  - Effective run parameters
    POST /api/v1/reclamation/run     - Run now; 409 while a run is active
"""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from __version__ import __version__, BUILD_DATE
from core.errors import SchedulerBusy
from core.models import RunResult
from .schemas import (
    SchedulerStatusResponse,
    RunConfigurationResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter(tags=["Health"])


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# These will be set by the main app at startup

_scheduler = None
_settings = None
_run_config = None


def set_services(scheduler, settings, run_config):
    """Set service instances for dependency injection."""
    global _scheduler, _settings, _run_config
    _scheduler = scheduler
    _settings = settings
    _run_config = run_config


def get_scheduler():
    if _scheduler is None:
        raise HTTPException(500, "Scheduler not initialized")
    return _scheduler


# ============================================================================
# HEALTH
# ============================================================================

@health_router.get("/livez")
async def liveness_probe():
    """Returns 200 while the process is responsive. No external checks."""
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


@health_router.get("/readyz")
async def readiness_probe():
    """
    Returns 200 once services are wired and, when scheduling is enabled,
    the scheduler loop is running.
    """
    if _scheduler is None or _settings is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Services not initialized"},
        )

    if _settings.scheduler_enabled and not _scheduler.is_running:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "message": "Scheduler not running"},
        )

    return {"status": "ready", "server_id": _settings.server_id}


# ============================================================================
# RECLAMATION
# ============================================================================

@router.get(
    "/reclamation/status",
    response_model=SchedulerStatusResponse,
    tags=["Reclamation"],
)
async def get_reclamation_status():
    """
    Get scheduler state and the result of the most recent run.
    """
    scheduler = get_scheduler()

    return SchedulerStatusResponse(
        server_id=_settings.server_id,
        scheduler_enabled=_settings.scheduler_enabled,
        running=scheduler.is_running,
        busy=scheduler.is_busy,
        cron_expression=scheduler.expression,
        next_fire_at=scheduler.next_fire_at,
        last_result=scheduler.last_result,
        stats=scheduler.stats,
    )


@router.get(
    "/reclamation/config",
    response_model=RunConfigurationResponse,
    tags=["Reclamation"],
)
async def get_reclamation_config():
    """
    Get the run parameters loaded at startup.
    """
    if _run_config is None:
        raise HTTPException(500, "Configuration not loaded")

    return RunConfigurationResponse(
        unlock_after_seconds=_run_config.unlock_after_seconds,
        batch_size=_run_config.batch_size,
        throttle_delay_ms=int(_run_config.throttle_delay.total_seconds() * 1000),
        max_iterations=_run_config.max_iterations,
        cron_expression=_run_config.cron_expression,
    )


@router.post(
    "/reclamation/run",
    response_model=RunResult,
    tags=["Reclamation"],
    responses={
        200: {"description": "Run finished"},
        409: {"model": ErrorResponse, "description": "A run is already active"},
    },
)
async def trigger_reclamation_run():
    """
    Run a reclamation pass now and wait for its result.

    The pass still goes through leader election, so a server that is not
    the oldest in the cluster returns status skipped-not-leader.

    The request stays open for the whole run. A large backlog takes about
    pages x batch_size x throttle delay (hours with the defaults), so
    clients should set a long timeout or poll /reclamation/status, which
    reports the scheduler as busy until the run returns.
    """
    scheduler = get_scheduler()

    try:
        result = await scheduler.trigger()
    except SchedulerBusy as e:
        raise HTTPException(409, str(e))

    logger.info(f"Manual unlock run {result.run_id} finished: {result.status.value}")
    return result


__all__ = ["router", "health_router", "set_services"]
