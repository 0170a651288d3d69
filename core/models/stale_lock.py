# ============================================================================
# STALE LOCK MODELS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Locked content read models
# PURPOSE: Rows returned by the stale-lock query and the content lookup
# CREATED: 19 OCT 2026
# ============================================================================
"""
Stale Lock Models

StaleLockRecord is what the scanner hands to the executor. It is a
read-only snapshot: the executor re-reads the live content through
ContentAccess.find() before releasing it.
"""

from datetime import datetime, timezone
from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field, field_validator


def _as_utc(v: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class StaleLockRecord(BaseModel):
    """
    One locked content version.

    Table: contentlet_version_info (owned by the content platform)
    """

    __sql_table__: ClassVar[str] = "contentlet_version_info"
    __sql_primary_key__: ClassVar[List[str]] = ["identifier", "lang"]

    working_inode: str = Field(
        ..., max_length=36, description="Working version inode (the handle)"
    )
    identifier: Optional[str] = Field(
        default=None, max_length=36, description="Content identifier"
    )
    lang: Optional[int] = Field(default=None, description="Language id")
    locked_by: str = Field(..., description="Actor holding the lock")
    locked_on: datetime = Field(..., description="When the lock was acquired")

    model_config = {"frozen": True}

    @field_validator("locked_on")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @property
    def handle(self) -> str:
        return self.working_inode

    def is_stale(self, cutoff: datetime) -> bool:
        """True if the lock predates cutoff and has a holder."""
        return bool(self.locked_by) and self.locked_on < _as_utc(cutoff)


class LockedContent(BaseModel):
    """
    Content resolved from a handle, with its current lock state.

    A None locked_by means the content is already unlocked.
    """

    inode: str = Field(..., max_length=36)
    identifier: Optional[str] = Field(default=None, max_length=36)
    lang: Optional[int] = None
    locked_by: Optional[str] = None
    locked_on: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_validator("locked_on")
    @classmethod
    def ensure_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v) if v is not None else None

    @property
    def is_locked(self) -> bool:
        return self.locked_by is not None


__all__ = ["StaleLockRecord", "LockedContent"]
