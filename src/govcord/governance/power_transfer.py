"""
Power Transfer Executor.

The only writer of administrator activation state and the only caller of
the privilege gateway. Governance records are written first inside a
transaction; the gateway and notification calls happen afterwards and are
best-effort, so the stored seat and the real Discord role may briefly
disagree. ``reconcile`` reports such drift.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

import aiosqlite

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import (
    Administrator,
    ImpeachmentStatus,
    ProceedingKind,
    SessionStatus,
)
from govcord.governance.clock import Clock, system_clock
from govcord.governance.collaborators import NotificationSink, PrivilegeGateway
from govcord.governance.errors import (
    ConflictError,
    ExternalCollaboratorError,
    SeatCeilingError,
    translate_integrity_error,
)
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.impeachment_repo import ImpeachmentRepository
from govcord.repositories.proceeding_ballot_repo import ProceedingBallotRepository
from govcord.repositories.reelection_repo import ReelectionSessionRepository
from govcord.util.logger import get_logger

logger = get_logger("power_transfer")


@dataclass(slots=True)
class PrivilegeDrift:
    """Difference between stored seats and the gateway's view of a guild."""
    guild_id: int
    missing: Set[int] = field(default_factory=set)
    unexpected: Set[int] = field(default_factory=set)

    @property
    def in_sync(self) -> bool:
        return not self.missing and not self.unexpected


async def announce(sink: NotificationSink, guild_id: int, text: str) -> bool:
    """Send a guild announcement, logging instead of raising on failure."""
    try:
        delivered = await sink.send(guild_id, text)
    except Exception as exc:
        error = ExternalCollaboratorError(f"notification to guild {guild_id} failed: {exc}")
        logger.error("[NOTIFICATION] %s", error.message, exc_info=True)
        return False
    if not delivered:
        logger.warning("[NOTIFICATION] Announcement for guild %s was not delivered", guild_id)
    return bool(delivered)


class PowerTransferExecutor:
    def __init__(
        self,
        db: ConnectionManager,
        gateway: PrivilegeGateway,
        notifier: NotificationSink,
        settings: GovernanceSettings,
        clock: Clock = system_clock,
    ) -> None:
        self.db = db
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    async def appoint(
        self,
        guild_id: int,
        user_id: int,
        cohort: str,
        election_id: Optional[int] = None,
    ) -> Administrator:
        """Seat ``user_id`` as the administrator for ``cohort``.

        Idempotent: if the user already holds an active seat in the guild,
        that seat is returned unchanged and no grant is requested.

        Raises:
            ConflictError: Another user holds the cohort's seat.
            SeatCeilingError: The guild already has the maximum number of administrators.
        """
        async with self.db.transaction() as conn:
            existing = await AdministratorRepository.get_active(conn, guild_id, user_id)
            if existing is not None:
                logger.info(
                    "[POWER TRANSFER] %s already seated for cohort %s in guild %s; nothing to do",
                    user_id, existing.cohort, guild_id,
                )
                return existing

            holder = await AdministratorRepository.get_active_for_cohort(conn, guild_id, cohort)
            if holder is not None:
                raise ConflictError(f"Cohort {cohort} already has an administrator (<@{holder.user_id}>).")

            active = await AdministratorRepository.count_active(conn, guild_id)
            if active >= self.settings.max_administrators:
                raise SeatCeilingError(
                    f"This server already has {active} of {self.settings.max_administrators} administrators."
                )

            try:
                admin = await AdministratorRepository.insert(
                    conn, guild_id, user_id, cohort, self.clock(), election_id
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, f"Cohort {cohort} already has an administrator.") from exc

        logger.info("[POWER TRANSFER] Appointed %s for cohort %s in guild %s", user_id, cohort, guild_id)
        await self._call_gateway("grant", guild_id, user_id)
        await announce(self.notifier, guild_id, f"<@{user_id}> is now the administrator for cohort {cohort}.")
        return admin

    async def remove(self, guild_id: int, user_id: int, reason: str = "") -> bool:
        """Deactivate the user's seat and close every outstanding proceeding against them.

        Ongoing reelection sessions and impeachments are cancelled and their
        ballots purged, together with any legacy ballots for the admin.

        Returns:
            True if an active seat was deactivated, False if there was none.
        """
        now = self.clock()
        async with self.db.transaction() as conn:
            removed = await AdministratorRepository.deactivate(conn, guild_id, user_id, now)
            if not removed:
                logger.info("[POWER TRANSFER] %s holds no active seat in guild %s; nothing to remove", user_id, guild_id)
                return False

            purged = 0
            session = await ReelectionSessionRepository.get_ongoing(conn, guild_id, user_id)
            if session is not None:
                await ReelectionSessionRepository.close(conn, session.id, SessionStatus.CANCELLED, now)
                purged += await ProceedingBallotRepository.delete_for_proceeding(
                    conn, ProceedingKind.REELECTION, session.id
                )

            record = await ImpeachmentRepository.get_ongoing(conn, guild_id, user_id)
            if record is not None:
                await ImpeachmentRepository.close(conn, record.id, ImpeachmentStatus.CANCELLED, now)
                purged += await ProceedingBallotRepository.delete_for_proceeding(
                    conn, ProceedingKind.IMPEACHMENT, record.id
                )

            purged += await ProceedingBallotRepository.delete_legacy_for_admin(conn, guild_id, user_id)

        logger.info(
            "[POWER TRANSFER] Removed %s from guild %s (%s); purged %d outstanding ballots",
            user_id, guild_id, reason or "no reason given", purged,
        )
        await self._call_gateway("revoke", guild_id, user_id)
        suffix = f" ({reason})" if reason else ""
        await announce(self.notifier, guild_id, f"<@{user_id}> is no longer an administrator{suffix}.")
        return True

    async def reconcile(self, guild_id: int) -> PrivilegeDrift:
        """Compare stored active seats with the gateway's list of privileged users."""
        async with self.db.read() as conn:
            admins = await AdministratorRepository.list_active(conn, guild_id)
        stored = {a.user_id for a in admins}

        try:
            actual = set(await self.gateway.list_admins(guild_id))
        except Exception as exc:
            raise ExternalCollaboratorError(f"Could not list administrators for guild {guild_id}: {exc}") from exc

        drift = PrivilegeDrift(guild_id, missing=stored - actual, unexpected=actual - stored)
        if not drift.in_sync:
            logger.warning(
                "[POWER TRANSFER] Privilege drift in guild %s: missing=%s unexpected=%s",
                guild_id, sorted(drift.missing), sorted(drift.unexpected),
            )
        return drift

    async def _call_gateway(self, action: str, guild_id: int, user_id: int) -> bool:
        call = self.gateway.grant if action == "grant" else self.gateway.revoke
        try:
            ok = await call(guild_id, user_id)
        except Exception as exc:
            error = ExternalCollaboratorError(f"{action} failed for {user_id} in guild {guild_id}: {exc}")
            logger.error("[POWER TRANSFER] %s", error.message, exc_info=True)
            return False
        if not ok:
            logger.warning("[POWER TRANSFER] Gateway refused to %s privilege for %s in guild %s", action, user_id, guild_id)
        return bool(ok)
