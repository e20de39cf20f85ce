"""
Impeachment Engine.

Members open removal proceedings against a sitting administrator. Opening
is gated by the administrator's tenure, by any ongoing proceeding, by a
cooldown after a failed impeachment, and by a per-initiator rate limit.

The quorum scales with the guild's live membership. A ballot with
``is_support=True`` supports the administrator; at quorum the impeachment
succeeds when opposition is at least as large as support, otherwise it
fails and starts the cooldown.
"""

from __future__ import annotations

import math
from typing import List, Optional

import aiosqlite

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import (
    ImpeachmentRecord,
    ImpeachmentStatus,
    ProceedingKind,
)
from govcord.governance.clock import Clock, system_clock
from govcord.governance.collaborators import NotificationSink, PrivilegeGateway, ProfileStore
from govcord.governance.errors import (
    ConflictError,
    CooldownError,
    ExternalCollaboratorError,
    InvalidPhaseError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
    translate_integrity_error,
)
from govcord.governance.power_transfer import PowerTransferExecutor, announce
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.impeachment_repo import ImpeachmentRepository
from govcord.repositories.proceeding_ballot_repo import ProceedingBallotRepository
from govcord.repositories.reelection_repo import ReelectionSessionRepository
from govcord.util.format_utils import SECONDS_PER_DAY, SECONDS_PER_HOUR, humanize_timestamp
from govcord.util.logger import get_logger

logger = get_logger("impeachment")


def required_votes(membership: int, percent: float, minimum: int, maximum: int) -> int:
    """``ceil(membership * percent / 100)`` clamped to ``[minimum, maximum]``."""
    raw = math.ceil(max(0, membership) * percent / 100)
    return max(minimum, min(maximum, raw))


class ImpeachmentEngine:
    def __init__(
        self,
        db: ConnectionManager,
        profiles: ProfileStore,
        gateway: PrivilegeGateway,
        executor: PowerTransferExecutor,
        notifier: NotificationSink,
        settings: GovernanceSettings,
        clock: Clock = system_clock,
    ) -> None:
        self.db = db
        self.profiles = profiles
        self.gateway = gateway
        self.executor = executor
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    async def get(self, record_id: int) -> ImpeachmentRecord:
        async with self.db.read() as conn:
            record = await ImpeachmentRepository.get(conn, record_id)
        if record is None:
            raise NotFoundError(f"Impeachment #{record_id} does not exist.")
        return record

    async def get_ongoing(self, guild_id: int, admin_user_id: int) -> Optional[ImpeachmentRecord]:
        async with self.db.read() as conn:
            return await ImpeachmentRepository.get_ongoing(conn, guild_id, admin_user_id)

    async def _quorum(self, guild_id: int) -> int:
        try:
            membership = await self.gateway.membership_count(guild_id)
        except Exception as exc:
            error = ExternalCollaboratorError(f"membership count for guild {guild_id} failed: {exc}")
            logger.error("[IMPEACHMENT] %s; using the minimum quorum", error.message)
            membership = 0
        return required_votes(
            membership,
            self.settings.impeachment_quorum_percent,
            self.settings.impeachment_quorum_min,
            self.settings.impeachment_quorum_max,
        )

    async def initiate(
        self,
        guild_id: int,
        admin_user_id: int,
        initiator_id: int,
        reason: str = "",
    ) -> ImpeachmentRecord:
        """Open an impeachment against an active administrator.

        Raises:
            ValidationError: The initiator has no profile, targets themselves,
                or the administrator's tenure is too short.
            NotFoundError: The target is not an active administrator.
            ConflictError: A reelection session or impeachment is already ongoing.
            CooldownError: An impeachment against the admin failed too recently.
            RateLimitedError: The initiator opened too many impeachments recently.
        """
        if initiator_id == admin_user_id:
            raise ValidationError("You cannot open an impeachment against yourself.")
        if await self.profiles.get(initiator_id, guild_id) is None:
            raise ValidationError("You need a member profile before you can open an impeachment.")

        quorum = await self._quorum(guild_id)
        now = self.clock()
        min_tenure = self.settings.impeachment_min_tenure_days * SECONDS_PER_DAY
        cooldown = self.settings.impeachment_cooldown_hours * SECONDS_PER_HOUR
        window = self.settings.impeachment_rate_window_hours * SECONDS_PER_HOUR

        async with self.db.transaction() as conn:
            admin = await AdministratorRepository.get_active(conn, guild_id, admin_user_id)
            if admin is None:
                raise NotFoundError(f"<@{admin_user_id}> is not an active administrator.")
            if now - admin.appointed_at <= min_tenure:
                raise ValidationError(
                    f"<@{admin_user_id}> has not served long enough to be impeached "
                    f"(minimum {self.settings.impeachment_min_tenure_days:g} days)."
                )
            if await ReelectionSessionRepository.get_ongoing(conn, guild_id, admin_user_id) is not None:
                raise ConflictError(f"A reelection vote for <@{admin_user_id}> is already in progress.")
            if await ImpeachmentRepository.get_ongoing(conn, guild_id, admin_user_id) is not None:
                raise ConflictError(f"An impeachment against <@{admin_user_id}> is already in progress.")

            last_failure = await ImpeachmentRepository.latest_failure_end(conn, guild_id, admin_user_id)
            if last_failure is not None and now - last_failure < cooldown:
                raise CooldownError(
                    f"An impeachment against <@{admin_user_id}> failed recently; try again after "
                    f"{humanize_timestamp(last_failure + int(cooldown))}."
                )

            recent = await ImpeachmentRepository.count_initiated_since(conn, guild_id, initiator_id, now - int(window))
            if recent >= self.settings.impeachment_rate_limit:
                raise RateLimitedError(
                    f"You can open at most {self.settings.impeachment_rate_limit} impeachment(s) every "
                    f"{self.settings.impeachment_rate_window_hours:g} hours."
                )

            try:
                record = await ImpeachmentRepository.insert(
                    conn, guild_id, admin_user_id, initiator_id, now, quorum, reason.strip()
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(
                    exc, f"An impeachment against <@{admin_user_id}> is already in progress."
                ) from exc

        logger.info(
            "[IMPEACHMENT] Record %s opened by %s against %s in guild %s (quorum %d)",
            record.id, initiator_id, admin_user_id, guild_id, quorum,
        )
        await announce(
            self.notifier,
            guild_id,
            f"<@{initiator_id}> opened an impeachment against <@{admin_user_id}>"
            f"{': ' + record.reason if record.reason else ''}. {quorum} ballots are needed.",
        )
        return record

    async def vote(self, record_id: int, voter_id: int, is_support: bool) -> ImpeachmentRecord:
        """Record a ballot (``is_support`` backs the administrator) and refresh the snapshot."""
        record = await self.get(record_id)
        if record.status is not ImpeachmentStatus.ONGOING:
            raise InvalidPhaseError("This impeachment has already closed.")
        if await self.profiles.get(voter_id, record.guild_id) is None:
            raise ValidationError("You need a member profile before you can vote.")

        async with self.db.transaction() as conn:
            if await ProceedingBallotRepository.has_voted(conn, ProceedingKind.IMPEACHMENT, record_id, voter_id):
                raise ConflictError("You have already voted in this impeachment.")
            try:
                await ProceedingBallotRepository.insert(
                    conn, ProceedingKind.IMPEACHMENT, record_id, record.guild_id,
                    voter_id, is_support, self.clock(),
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, "You have already voted in this impeachment.") from exc
            counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.IMPEACHMENT, record_id)
            await ImpeachmentRepository.update_snapshot(conn, record_id, counts)

        record.support_votes, record.oppose_votes, record.total_votes = counts.support, counts.oppose, counts.total
        return record

    async def vote_for_admin(self, guild_id: int, admin_user_id: int, voter_id: int, is_support: bool) -> ImpeachmentRecord:
        """Vote in the admin's ongoing impeachment, evaluate it, and return its latest state."""
        record = await self.get_ongoing(guild_id, admin_user_id)
        if record is None:
            raise NotFoundError(f"There is no impeachment in progress against <@{admin_user_id}>.")
        await self.vote(record.id, voter_id, is_support)
        await self.evaluate(record.id)
        return await self.get(record.id)

    async def evaluate(self, record_id: int) -> Optional[ImpeachmentStatus]:
        """Resolve the record once it has reached quorum.

        Returns:
            ``SUCCESS`` or ``FAILED`` if this call closed the record, otherwise None.
        """
        async with self.db.transaction() as conn:
            record = await ImpeachmentRepository.get(conn, record_id)
            if record is None:
                raise NotFoundError(f"Impeachment #{record_id} does not exist.")
            if record.status is not ImpeachmentStatus.ONGOING:
                return None
            counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.IMPEACHMENT, record_id)
            await ImpeachmentRepository.update_snapshot(conn, record_id, counts)
            if counts.total < record.required_votes:
                return None

            status = ImpeachmentStatus.SUCCESS if counts.oppose >= counts.support else ImpeachmentStatus.FAILED
            if not await ImpeachmentRepository.close(conn, record_id, status, self.clock()):
                return None

        logger.info(
            "[IMPEACHMENT] Record %s against %s resolved as %s (%d support, %d oppose)",
            record_id, record.admin_user_id, status, counts.support, counts.oppose,
        )
        if status is ImpeachmentStatus.SUCCESS:
            await self.executor.remove(record.guild_id, record.admin_user_id, reason="impeached")
        else:
            await announce(
                self.notifier,
                record.guild_id,
                f"The impeachment against <@{record.admin_user_id}> failed "
                f"({counts.support} for the administrator, {counts.oppose} against).",
            )
        return status

    async def cancel(
        self,
        guild_id: int,
        admin_user_id: int,
        requested_by: int,
        is_moderator: bool = False,
    ) -> ImpeachmentRecord:
        """Cancel the ongoing impeachment against the admin.

        Only the initiator or a moderator may cancel.
        """
        now = self.clock()
        async with self.db.transaction() as conn:
            record = await ImpeachmentRepository.get_ongoing(conn, guild_id, admin_user_id)
            if record is None:
                raise NotFoundError(f"There is no impeachment in progress against <@{admin_user_id}>.")
            if requested_by != record.initiator_id and not is_moderator:
                raise ValidationError("Only the member who opened the impeachment or a moderator can cancel it.")
            await ImpeachmentRepository.close(conn, record.id, ImpeachmentStatus.CANCELLED, now)
            record.status = ImpeachmentStatus.CANCELLED
            record.ended_at = now

        logger.info("[IMPEACHMENT] Record %s cancelled by %s", record.id, requested_by)
        await announce(self.notifier, guild_id, f"The impeachment against <@{admin_user_id}> was cancelled.")
        return record

    async def expire(self, record_id: int, max_age_hours: Optional[float] = None) -> bool:
        """Cancel the record if it is older than ``max_age_hours``. Returns True if cancelled."""
        horizon = self.settings.session_max_age_hours if max_age_hours is None else max_age_hours
        now = self.clock()
        async with self.db.transaction() as conn:
            record = await ImpeachmentRepository.get(conn, record_id)
            if record is None or record.status is not ImpeachmentStatus.ONGOING:
                return False
            if now - record.initiated_at < horizon * SECONDS_PER_HOUR:
                return False
            cancelled = await ImpeachmentRepository.close(conn, record_id, ImpeachmentStatus.CANCELLED, now)

        if cancelled:
            logger.info("[IMPEACHMENT] Record %s against %s expired", record_id, record.admin_user_id)
        return cancelled

    async def sweep(self, guild_id: int) -> int:
        """Evaluate every ongoing record in the guild, then expire stale ones."""
        async with self.db.read() as conn:
            records = await ImpeachmentRepository.list_ongoing(conn, guild_id)
        closed = 0
        for record in records:
            if await self.evaluate(record.id) is not None:
                closed += 1
            elif await self.expire(record.id):
                closed += 1
        return closed

    async def statistics(self, guild_id: int) -> List[ImpeachmentRecord]:
        """Ongoing records with their running ballot snapshot."""
        async with self.db.read() as conn:
            return await ImpeachmentRepository.list_ongoing(conn, guild_id)
