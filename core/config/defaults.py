# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults and loaders for run and service settings
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides the documented defaults for the unlock job and turns a
ConfigSource into typed settings.

Design:
- Immutable dataclasses for defaults
- Every value can come from the environment or plugin.properties
- Malformed values raise ConfigurationError at startup, never mid-run
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from core.contracts import ConfigSource
from core.errors import ConfigurationError
from core.models.run import RunConfiguration


# Configuration keys (names kept compatible with existing plugin.properties)
UNLOCK_AFTER_SECONDS = "UNLOCK_AFTER_SECONDS"
SQL_LIMIT_CLAUSE = "SQL_LIMIT_CLAUSE"
THREAD_SLEEP_BETWEEN_UNLOCKS = "THREAD_SLEEP_BETWEEN_UNLOCKS"
MAX_ITERATIONS = "MAX_ITERATIONS"
CRON_EXPRESSION = "CRON_EXPRESSION"


@dataclass(frozen=True)
class UnlockDefaults:
    """
    Defaults for the unlock job.

    Unlocks up to batch_size * max_iterations records per run; anything
    beyond that waits for the next tick.
    """
    unlock_after_seconds: int = 86400  # 1 day
    batch_size: int = 1000
    throttle_delay_ms: int = 50
    max_iterations: int = 1000


@dataclass(frozen=True)
class ServiceSettings:
    """
    Hosting settings: which backends to wire and how this node is named.
    """
    server_id: str
    store_backend: str = "postgres"  # postgres | memory
    cluster_mode: str = "database"  # database | standalone
    heartbeat_window_seconds: int = 180
    election_timeout_seconds: float = 10.0
    scheduler_enabled: bool = True

    @classmethod
    def from_source(cls, source: ConfigSource) -> "ServiceSettings":
        """Create from a configuration source."""
        store_backend = (source.get("STORE_BACKEND", "postgres") or "").lower()
        if store_backend not in ("postgres", "memory"):
            raise ConfigurationError("STORE_BACKEND", f"unknown backend '{store_backend}'")

        cluster_mode = (source.get("CLUSTER_MODE", "database") or "").lower()
        if cluster_mode not in ("database", "standalone"):
            raise ConfigurationError("CLUSTER_MODE", f"unknown mode '{cluster_mode}'")

        return cls(
            server_id=source.get("SERVER_ID") or str(uuid.uuid4()),
            store_backend=store_backend,
            cluster_mode=cluster_mode,
            heartbeat_window_seconds=_get_int(
                source, "CLUSTER_HEARTBEAT_WINDOW_SECONDS", 180, minimum=1
            ),
            election_timeout_seconds=_get_float(
                source, "ELECTION_TIMEOUT_SECONDS", 10.0, minimum=0.0, exclusive=True
            ),
            scheduler_enabled=(source.get("SCHEDULER_ENABLED", "true") or "").lower()
            in ("1", "true", "yes"),
        )


def _get_int(source: ConfigSource, key: str, default: int, minimum: int) -> int:
    raw = source.get(key)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigurationError(key, f"expected an integer, got '{raw}'")
    if value < minimum:
        raise ConfigurationError(key, f"must be >= {minimum}, got {value}")
    return value


def _get_float(
    source: ConfigSource, key: str, default: float, minimum: float, exclusive: bool = False
) -> float:
    raw = source.get(key)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        raise ConfigurationError(key, f"expected a number, got '{raw}'")
    if value < minimum or (exclusive and value == minimum):
        op = ">" if exclusive else ">="
        raise ConfigurationError(key, f"must be {op} {minimum}, got {value}")
    return value


def load_run_configuration(
    source: ConfigSource,
    require_cron: bool = True,
    defaults: Optional[UnlockDefaults] = None,
) -> RunConfiguration:
    """
    Build a RunConfiguration from a configuration source.

    Args:
        source: Where to read keys from
        require_cron: Raise if CRON_EXPRESSION is missing
        defaults: Override the documented defaults

    Returns:
        Immutable RunConfiguration

    Raises:
        ConfigurationError: A value is missing or malformed
    """
    defaults = defaults or UnlockDefaults()

    cron_expression = source.get(CRON_EXPRESSION)
    if require_cron and not cron_expression:
        raise ConfigurationError(CRON_EXPRESSION, "a cron expression is required")

    return RunConfiguration(
        unlock_after_seconds=_get_int(
            source, UNLOCK_AFTER_SECONDS, defaults.unlock_after_seconds, minimum=0
        ),
        batch_size=_get_int(source, SQL_LIMIT_CLAUSE, defaults.batch_size, minimum=1),
        throttle_delay=timedelta(
            milliseconds=_get_int(
                source, THREAD_SLEEP_BETWEEN_UNLOCKS, defaults.throttle_delay_ms, minimum=0
            )
        ),
        max_iterations=_get_int(
            source, MAX_ITERATIONS, defaults.max_iterations, minimum=1
        ),
        cron_expression=cron_expression.strip() if cron_expression else None,
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "UNLOCK_AFTER_SECONDS",
    "SQL_LIMIT_CLAUSE",
    "THREAD_SLEEP_BETWEEN_UNLOCKS",
    "MAX_ITERATIONS",
    "CRON_EXPRESSION",
    "UnlockDefaults",
    "ServiceSettings",
    "load_run_configuration",
]
