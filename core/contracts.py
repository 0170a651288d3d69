# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Foundation - Core enums and collaborator contracts
# PURPOSE: Define run states and the interfaces the reclamation core consumes
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: RunState, RunStatus, SYSTEM_ACTOR, ConfigSource, StaleLockQuery,
#          ContentAccess, StoreSession, SessionFactory, ClusterMembership
# DEPENDENCIES: enum, typing
# ============================================================================
"""
Base contracts for the timed unlock system.

The reclamation core never talks to a database, a cluster registry or a
properties file directly. It consumes the collaborators below, which are
passed in at construction time:

- ConfigSource       (core/config/source.py)
- StoreSession       (repositories/content_repo.py, repositories/memory.py)
- ClusterMembership  (repositories/cluster_repo.py)
"""

from datetime import datetime
from enum import Enum
from typing import (
    TYPE_CHECKING,
    AsyncContextManager,
    Callable,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

if TYPE_CHECKING:
    from core.models.stale_lock import LockedContent, StaleLockRecord


# Identity used for privileged maintenance operations
SYSTEM_ACTOR = "system"


# ============================================================================
# STATUS ENUMS
# ============================================================================

class RunState(str, Enum):
    """
    Reclamation run lifecycle states.

    State transitions:
        NOT_STARTED -> ELECTION_PENDING -> SCANNING -> COMPLETED
                                        -> SKIPPED_NOT_LEADER
                                                    -> ABORTED
    """
    NOT_STARTED = "not_started"
    ELECTION_PENDING = "election_pending"
    SCANNING = "scanning"
    COMPLETED = "completed"
    SKIPPED_NOT_LEADER = "skipped_not_leader"
    ABORTED = "aborted"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (
            RunState.COMPLETED,
            RunState.SKIPPED_NOT_LEADER,
            RunState.ABORTED,
        )


class RunStatus(str, Enum):
    """Terminal status reported in a RunResult."""
    COMPLETED = "completed"
    SKIPPED_NOT_LEADER = "skipped-not-leader"
    ABORTED = "aborted"

    @classmethod
    def from_state(cls, state: RunState) -> "RunStatus":
        """Map a terminal RunState onto the reported status."""
        mapping = {
            RunState.COMPLETED: cls.COMPLETED,
            RunState.SKIPPED_NOT_LEADER: cls.SKIPPED_NOT_LEADER,
            RunState.ABORTED: cls.ABORTED,
        }
        if state not in mapping:
            raise ValueError(f"{state.value} is not a terminal run state")
        return mapping[state]


# ============================================================================
# COLLABORATOR CONTRACTS
# ============================================================================

@runtime_checkable
class ConfigSource(Protocol):
    """Key/value configuration lookup. Values are always strings."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...


class StaleLockQuery(Protocol):
    """Paginated query for locks acquired before a cutoff."""

    async def query_stale_locks(
        self,
        cutoff: datetime,
        limit: int,
        after: Optional[str] = None,
    ) -> List["StaleLockRecord"]:
        """
        Return up to `limit` records with locked_on < cutoff and a non-null
        holder, ordered by handle, restricted to handles greater than `after`.
        """
        ...


class ContentAccess(Protocol):
    """Lookup and unlock of a content resource by its handle."""

    async def find(
        self, handle: str, actor: str, bypass_auth: bool
    ) -> "LockedContent":
        ...

    async def release(
        self, content: "LockedContent", actor: str, bypass_auth: bool
    ) -> None:
        ...


class StoreSession(StaleLockQuery, ContentAccess, Protocol):
    """One store connection, exclusively owned by a run."""


SessionFactory = Callable[[], AsyncContextManager[StoreSession]]


class ClusterMembership(Protocol):
    """Read-only view of cluster membership used for leader election."""

    async def oldest_node_id(self) -> str:
        ...

    async def local_node_id(self) -> str:
        ...


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "SYSTEM_ACTOR",
    "RunState",
    "RunStatus",
    "ConfigSource",
    "StaleLockQuery",
    "ContentAccess",
    "StoreSession",
    "SessionFactory",
    "ClusterMembership",
]
