"""
Periodic governance scans.

Three scans run per guild:

- ``election-trigger``   open an election when seats are below the ceiling
- ``reelection-trigger`` open reelection sessions for administrators due for review
- ``deadlines``          advance election phases, resolve proceedings at quorum,
                         and expire stale proceedings

The ``privilege-sync`` check compares stored seats with the Discord roles and
logs any drift. It runs once when a guild is registered and on demand.

Every scan is safe to repeat: terminal records are skipped and uniqueness
constraints reject duplicates. A failure is logged as a ``ScanError`` for
that guild only, so one broken guild never stops the others.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from govcord.governance.election_lifecycle import ElectionLifecycleManager
from govcord.governance.errors import ScanError
from govcord.governance.impeachment import ImpeachmentEngine
from govcord.governance.power_transfer import PowerTransferExecutor, PrivilegeDrift
from govcord.governance.reelection import ReelectionSessionEngine
from govcord.util.logger import get_logger

logger = get_logger("governance_scans")

ELECTION_TRIGGER = "election-trigger"
REELECTION_TRIGGER = "reelection-trigger"
DEADLINES = "deadlines"
PRIVILEGE_SYNC = "privilege-sync"


class GovernanceScans:
    def __init__(
        self,
        lifecycle: ElectionLifecycleManager,
        reelection: ReelectionSessionEngine,
        impeachment: ImpeachmentEngine,
        executor: PowerTransferExecutor,
    ) -> None:
        self.lifecycle = lifecycle
        self.reelection = reelection
        self.impeachment = impeachment
        self.executor = executor

    @property
    def callbacks(self) -> Dict[str, Callable[[int], Awaitable[Any]]]:
        return {
            ELECTION_TRIGGER: self.election_trigger_scan,
            REELECTION_TRIGGER: self.reelection_trigger_scan,
            DEADLINES: self.deadline_scan,
        }

    async def _guarded(self, label: str, guild_id: int, step: Callable[[int], Awaitable[Any]]) -> Any:
        try:
            return await step(guild_id)
        except Exception as exc:
            error = ScanError(guild_id, label, exc)
            logger.warning("[SCAN] %s", error.message, exc_info=True)
            return None

    async def election_trigger_scan(self, guild_id: int) -> bool:
        """Returns True if an election was opened."""
        election = await self._guarded(ELECTION_TRIGGER, guild_id, self.lifecycle.maybe_trigger)
        return election is not None

    async def reelection_trigger_scan(self, guild_id: int) -> int:
        """Returns the number of sessions opened."""
        sessions = await self._guarded(REELECTION_TRIGGER, guild_id, self.reelection.maybe_trigger)
        return len(sessions or [])

    async def deadline_scan(self, guild_id: int) -> None:
        await self._guarded(DEADLINES, guild_id, self.lifecycle.advance_deadlines)
        await self._guarded(DEADLINES, guild_id, self.reelection.sweep)
        await self._guarded(DEADLINES, guild_id, self.impeachment.sweep)

    async def privilege_sync_scan(self, guild_id: int) -> Optional[PrivilegeDrift]:
        """Report drift between stored seats and granted roles. Returns None if the check failed."""
        drift = await self._guarded(PRIVILEGE_SYNC, guild_id, self.executor.reconcile)
        if drift is not None and drift.in_sync:
            logger.debug("[SCAN] Privileges in sync for guild %s", guild_id)
        return drift
