# ============================================================================
# DOMAIN ERRORS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Foundation - Exceptions raised at collaborator seams
# PURPOSE: Typed failures for config loading, content access and cluster view
# CREATED: 19 OCT 2026
# ============================================================================
"""
Domain Errors

Collaborators raise these; the reclamation core catches them at the
narrowest scope and turns them into tagged outcome values
(see reclamation/outcomes.py).
"""

from typing import Optional


class UnlockServiceError(Exception):
    """Base class for all service errors."""


class ConfigurationError(UnlockServiceError):
    """
    Raised when configuration is missing or malformed.

    Surfaces at startup only, never from inside a run.
    """

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Invalid configuration for {key}: {message}")


class ContentNotFound(UnlockServiceError):
    """Raised when no content exists for a handle."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Content not found for inode '{handle}'")


class PermissionDenied(UnlockServiceError):
    """Raised when an actor may not unlock a piece of content."""

    def __init__(self, handle: str, actor: str, holder: Optional[str] = None):
        self.handle = handle
        self.actor = actor
        self.holder = holder
        super().__init__(
            f"Actor '{actor}' may not unlock '{handle}' (locked by {holder})"
        )


class LockChanged(UnlockServiceError):
    """Raised when a lock was re-acquired or altered after it was scanned."""

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Lock on '{handle}' changed since it was scanned")


class ClusterViewUnavailable(UnlockServiceError):
    """Raised when the membership view cannot name an oldest node."""


class SchedulerBusy(UnlockServiceError):
    """Raised when a run is requested while another run is active."""

    def __init__(self, message: str = "A reclamation run is already in progress"):
        super().__init__(message)


__all__ = [
    "UnlockServiceError",
    "ConfigurationError",
    "ContentNotFound",
    "PermissionDenied",
    "LockChanged",
    "ClusterViewUnavailable",
    "SchedulerBusy",
]
