# ============================================================================
# TIMED UNLOCK - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - FastAPI application entry point
# PURPOSE: Main application with the unlock scheduler
# CREATED: 19 OCT 2026
# ============================================================================
"""
Timed Unlock Main Application

FastAPI application that:
1. Loads configuration from the environment and plugin.properties
2. Wires the content store and cluster view
3. Runs the unlock job on CRON_EXPRESSION in the background
4. Exposes probes, run status and a manual trigger

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH, JOB_NAME, JOB_GROUP

from core.config import (
    ServiceSettings,
    default_config_source,
    load_run_configuration,
)
from core.errors import ConfigurationError
from repositories import (
    init_pool,
    close_pool,
    postgres_session_factory,
    ClusterMembershipRepository,
    StaticClusterMembership,
    InMemoryContentStore,
)
from reclamation import RunCollaborators, make_run_job
from scheduler import CronScheduler
from api.routes import router, health_router, set_services

# Configure logging using our structured logging system
from core.logging import configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)

# Global instances
_scheduler: CronScheduler = None


async def build_collaborators(settings: ServiceSettings) -> RunCollaborators:
    """
    Wire the store and cluster view selected by settings.

    Raises:
        ConfigurationError: Database cluster mode without a database store
    """
    pool = None
    if settings.store_backend == "postgres":
        pool = await init_pool()
        open_session = postgres_session_factory(pool)
        logger.info("Content store: PostgreSQL")
    else:
        open_session = InMemoryContentStore().open_session
        logger.warning("Content store: in-memory (nothing is persisted)")

    if settings.cluster_mode == "database":
        if pool is None:
            raise ConfigurationError(
                "CLUSTER_MODE", "database mode requires STORE_BACKEND=postgres"
            )
        membership = ClusterMembershipRepository(
            pool,
            settings.server_id,
            heartbeat_window_seconds=settings.heartbeat_window_seconds,
        )
    else:
        membership = StaticClusterMembership(settings.server_id)
        logger.info("Cluster mode: standalone (this server is always the oldest)")

    return RunCollaborators(
        open_session=open_session,
        membership=membership,
        election_timeout_seconds=settings.election_timeout_seconds,
        server_id=settings.server_id,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    global _scheduler

    logger.info(f"Starting {JOB_NAME} v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    # Configuration errors stop startup here
    source = default_config_source()
    settings = ServiceSettings.from_source(source)
    run_config = load_run_configuration(source)
    logger.info(
        f"Server {settings.server_id}: unlock_after={run_config.unlock_after_seconds}s, "
        f"batch_size={run_config.batch_size}, max_iterations={run_config.max_iterations}"
    )

    collaborators = await build_collaborators(settings)

    _scheduler = CronScheduler(
        run_config.cron_expression,
        make_run_job(run_config, collaborators),
    )

    set_services(scheduler=_scheduler, settings=settings, run_config=run_config)

    if settings.scheduler_enabled:
        await _scheduler.start()
    else:
        logger.info("Scheduler disabled, runs only start via the API")

    yield

    # Shutdown
    logger.info(f"Shutting down {JOB_NAME}...")

    await _scheduler.stop()
    await close_pool()

    logger.info(f"{JOB_NAME} stopped")


# Create FastAPI app
app = FastAPI(
    title="Timed Content Unlock",
    description=f"{JOB_GROUP}: {JOB_NAME}",
    version=__version__,
    lifespan=lifespan,
)

# Include health check routes (no prefix - /livez, /readyz)
app.include_router(health_router)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": JOB_NAME,
        "group": JOB_GROUP,
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
