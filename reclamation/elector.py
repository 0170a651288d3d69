# ============================================================================
# LEADER ELECTOR
# ============================================================================
# EPOCH: 1 - TIMED UNLOCK
# STATUS: Core - Advisory oldest-node election
# PURPOSE: Decide whether this server runs the unlock job this tick
# CREATED: 19 OCT 2026
# ============================================================================
"""
Leader Elector

Only the oldest live server in the cluster runs a reclamation pass. The
check is advisory: two servers that briefly disagree about membership may
both run, which is harmless because every release is conditional on the
lock being unchanged.

If the cluster view cannot be read, or the read times out, the elector
fails closed and this server skips the run.
"""

import asyncio
import logging
from typing import Optional, Tuple

from core.contracts import ClusterMembership
from .outcomes import ElectionError

logger = logging.getLogger(__name__)


class LeaderElector:
    """Oldest-node-wins election over a ClusterMembership view."""

    def __init__(
        self,
        membership: ClusterMembership,
        timeout_seconds: Optional[float] = 10.0,
    ):
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self.membership = membership
        self.timeout_seconds = timeout_seconds
        self.last_error: Optional[ElectionError] = None
        self.last_oldest: Optional[str] = None
        self.last_local: Optional[str] = None

    async def should_run(self) -> bool:
        """
        True iff this server is the oldest live member.

        Any failure to read the cluster view yields False and sets
        last_error.
        """
        self.last_error = None
        self.last_oldest = None
        self.last_local = None

        try:
            oldest, local = await asyncio.wait_for(
                self._read_view(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            self.last_error = ElectionError(
                f"Cluster view not available within {self.timeout_seconds}s"
            )
            logger.warning(f"{self.last_error.message}, skipping unlock run")
            return False
        except Exception as e:
            self.last_error = ElectionError(f"Cluster view unavailable: {e}")
            logger.warning(
                f"{self.last_error.message}, skipping unlock run", exc_info=True
            )
            return False

        self.last_oldest = oldest
        self.last_local = local

        if not oldest or not local:
            self.last_error = ElectionError("Cluster view returned an empty node id")
            logger.warning(f"{self.last_error.message}, skipping unlock run")
            return False

        if oldest != local:
            logger.info(
                f"Server {local} is not the oldest in the cluster "
                f"(oldest={oldest}), skipping unlock run"
            )
            return False

        logger.debug(f"Server {local} is the oldest in the cluster")
        return True

    async def _read_view(self) -> Tuple[str, str]:
        oldest = await self.membership.oldest_node_id()
        local = await self.membership.local_node_id()
        return oldest, local


__all__ = ["LeaderElector"]
