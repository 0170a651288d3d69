# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides configuration sources (environment, plugin.properties) and the
loaders that turn them into typed settings.
"""

from core.config.defaults import (
    UNLOCK_AFTER_SECONDS,
    SQL_LIMIT_CLAUSE,
    THREAD_SLEEP_BETWEEN_UNLOCKS,
    MAX_ITERATIONS,
    CRON_EXPRESSION,
    UnlockDefaults,
    ServiceSettings,
    load_run_configuration,
)
from core.config.source import (
    EnvConfigSource,
    MappingConfigSource,
    PropertiesConfigSource,
    ChainedConfigSource,
    default_config_source,
)

__all__ = [
    "UNLOCK_AFTER_SECONDS",
    "SQL_LIMIT_CLAUSE",
    "THREAD_SLEEP_BETWEEN_UNLOCKS",
    "MAX_ITERATIONS",
    "CRON_EXPRESSION",
    "UnlockDefaults",
    "ServiceSettings",
    "load_run_configuration",
    "EnvConfigSource",
    "MappingConfigSource",
    "PropertiesConfigSource",
    "ChainedConfigSource",
    "default_config_source",
]
