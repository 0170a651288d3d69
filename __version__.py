# ============================================================================
# VERSION - TIMED CONTENT UNLOCK
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# ============================================================================
"""
Version information for the Timed Content Unlock service.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch.build
__version__ = "1.1.0.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-19"

# Job identity (shown in logs and the status endpoint)
JOB_NAME = "Unlocks locked content based on a timer"
JOB_GROUP = "Maintenance Jobs"
EPOCH = 1
