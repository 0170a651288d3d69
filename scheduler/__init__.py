# ============================================================================
# SCHEDULER MODULE
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Service - Cron trigger
# PURPOSE: Export the cron scheduler
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from .cron import CronScheduler, RunJob, normalize_cron, next_fire_time

__all__ = ["CronScheduler", "RunJob", "normalize_cron", "next_fire_time"]
