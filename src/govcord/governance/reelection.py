"""
Reelection Session Engine.

A session is a referendum on one sitting administrator. It stays ongoing
until it collects its fixed quorum of ballots; then strictly more support
than opposition keeps the administrator, anything else removes them
through the Power Transfer Executor. Sessions older than the configured
horizon are cancelled regardless of their ballots.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import aiosqlite

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import (
    ProceedingKind,
    ReelectionSession,
    SessionOutcome,
    SessionStatus,
    VoteCounts,
)
from govcord.governance.clock import Clock, system_clock
from govcord.governance.collaborators import NotificationSink, ProfileStore
from govcord.governance.errors import (
    ConflictError,
    InvalidPhaseError,
    NotFoundError,
    ValidationError,
    translate_integrity_error,
)
from govcord.governance.power_transfer import PowerTransferExecutor, announce
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.impeachment_repo import ImpeachmentRepository
from govcord.repositories.proceeding_ballot_repo import ProceedingBallotRepository
from govcord.repositories.reelection_repo import ReelectionSessionRepository
from govcord.util.format_utils import SECONDS_PER_DAY, SECONDS_PER_HOUR, percentage, whole_days_between
from govcord.util.logger import get_logger

logger = get_logger("reelection")

AUTO_TRIGGER_REASON = "periodic tenure review"


@dataclass(slots=True)
class SessionStatistics:
    session: ReelectionSession
    counts: VoteCounts
    tenure_days: int

    @property
    def support_rate(self) -> int:
        return percentage(self.counts.support, self.counts.total)


class ReelectionSessionEngine:
    def __init__(
        self,
        db: ConnectionManager,
        profiles: ProfileStore,
        executor: PowerTransferExecutor,
        notifier: NotificationSink,
        settings: GovernanceSettings,
        clock: Clock = system_clock,
    ) -> None:
        self.db = db
        self.profiles = profiles
        self.executor = executor
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    async def get(self, session_id: int) -> ReelectionSession:
        async with self.db.read() as conn:
            session = await ReelectionSessionRepository.get(conn, session_id)
        if session is None:
            raise NotFoundError(f"Reelection session #{session_id} does not exist.")
        return session

    async def get_ongoing(self, guild_id: int, admin_user_id: int) -> Optional[ReelectionSession]:
        async with self.db.read() as conn:
            return await ReelectionSessionRepository.get_ongoing(conn, guild_id, admin_user_id)

    async def create_session(
        self,
        guild_id: int,
        admin_user_id: int,
        initiator_id: Optional[int] = None,
        auto_triggered: bool = False,
        reason: str = "",
    ) -> ReelectionSession:
        """Open a reelection session for an active administrator.

        Raises:
            NotFoundError: The user is not an active administrator.
            ConflictError: A session is already ongoing for the administrator.
        """
        async with self.db.transaction() as conn:
            if await AdministratorRepository.get_active(conn, guild_id, admin_user_id) is None:
                raise NotFoundError(f"<@{admin_user_id}> is not an active administrator.")
            if await ReelectionSessionRepository.get_ongoing(conn, guild_id, admin_user_id) is not None:
                raise ConflictError(f"A reelection vote for <@{admin_user_id}> is already in progress.")
            try:
                session = await ReelectionSessionRepository.insert(
                    conn,
                    guild_id=guild_id,
                    admin_user_id=admin_user_id,
                    started_at=self.clock(),
                    required_votes=self.settings.reelection_required_votes,
                    initiator_id=initiator_id,
                    auto_triggered=auto_triggered,
                    trigger_reason=reason,
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(
                    exc, f"A reelection vote for <@{admin_user_id}> is already in progress."
                ) from exc

        logger.info(
            "[REELECTION] Session %s opened for %s in guild %s (auto=%s)",
            session.id, admin_user_id, guild_id, auto_triggered,
        )
        await announce(
            self.notifier,
            guild_id,
            f"A reelection vote for <@{admin_user_id}> has started. "
            f"{session.required_votes} ballots decide whether they keep their seat.",
        )
        return session

    async def vote(self, session_id: int, voter_id: int, is_support: bool) -> VoteCounts:
        """Record a ballot and return the session's updated counts.

        Raises:
            InvalidPhaseError: The session is no longer ongoing.
            ValidationError: The voter has no profile.
            ConflictError: The voter already voted in this session.
        """
        session = await self.get(session_id)
        if session.status is not SessionStatus.ONGOING:
            raise InvalidPhaseError("This reelection vote has already closed.")
        if await self.profiles.get(voter_id, session.guild_id) is None:
            raise ValidationError("You need a member profile before you can vote.")

        async with self.db.transaction() as conn:
            if await ProceedingBallotRepository.has_voted(conn, ProceedingKind.REELECTION, session_id, voter_id):
                raise ConflictError("You have already voted in this reelection.")
            try:
                await ProceedingBallotRepository.insert(
                    conn, ProceedingKind.REELECTION, session_id, session.guild_id,
                    voter_id, is_support, self.clock(),
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, "You have already voted in this reelection.") from exc
            counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.REELECTION, session_id)

        logger.debug("[REELECTION] Ballot in session %s: %d/%d", session_id, counts.total, session.required_votes)
        return counts

    async def vote_for_admin(self, guild_id: int, admin_user_id: int, voter_id: int, is_support: bool) -> ReelectionSession:
        """Vote in the admin's ongoing session, evaluate it, and return its latest state."""
        session = await self.get_ongoing(guild_id, admin_user_id)
        if session is None:
            raise NotFoundError(f"There is no reelection vote in progress for <@{admin_user_id}>.")
        await self.vote(session.id, voter_id, is_support)
        await self.evaluate(session.id)
        return await self.get(session.id)

    async def evaluate(self, session_id: int) -> Optional[SessionOutcome]:
        """Resolve the session once it has reached quorum.

        Returns:
            The outcome if this call completed the session, otherwise None.
        """
        async with self.db.transaction() as conn:
            session = await ReelectionSessionRepository.get(conn, session_id)
            if session is None:
                raise NotFoundError(f"Reelection session #{session_id} does not exist.")
            if session.status is not SessionStatus.ONGOING:
                return None
            counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.REELECTION, session_id)
            if counts.total < session.required_votes:
                return None

            outcome = SessionOutcome.REELECTED if counts.support > counts.oppose else SessionOutcome.REMOVED
            if not await ReelectionSessionRepository.close(conn, session_id, SessionStatus.COMPLETED, self.clock(), outcome):
                return None

        logger.info(
            "[REELECTION] Session %s for %s resolved as %s (%d support, %d oppose)",
            session_id, session.admin_user_id, outcome, counts.support, counts.oppose,
        )
        if outcome is SessionOutcome.REMOVED:
            await self.executor.remove(session.guild_id, session.admin_user_id, reason="lost reelection vote")
        else:
            await announce(
                self.notifier,
                session.guild_id,
                f"<@{session.admin_user_id}> keeps their seat ({counts.support} for, {counts.oppose} against).",
            )
        return outcome

    async def expire(self, session_id: int, max_age_hours: Optional[float] = None) -> bool:
        """Cancel the session if it is older than ``max_age_hours``. Returns True if cancelled."""
        horizon = self.settings.session_max_age_hours if max_age_hours is None else max_age_hours
        now = self.clock()
        async with self.db.transaction() as conn:
            session = await ReelectionSessionRepository.get(conn, session_id)
            if session is None or session.status is not SessionStatus.ONGOING:
                return False
            if now - session.started_at < horizon * SECONDS_PER_HOUR:
                return False
            cancelled = await ReelectionSessionRepository.close(conn, session_id, SessionStatus.CANCELLED, now)

        if cancelled:
            logger.info("[REELECTION] Session %s for %s expired after %.0f hours", session_id, session.admin_user_id, horizon)
        return cancelled

    async def sweep(self, guild_id: int) -> int:
        """Evaluate every ongoing session in the guild, then expire stale ones.

        Returns the number of sessions that closed.
        """
        async with self.db.read() as conn:
            sessions = await ReelectionSessionRepository.list_ongoing(conn, guild_id)
        closed = 0
        for session in sessions:
            if await self.evaluate(session.id) is not None:
                closed += 1
            elif await self.expire(session.id):
                closed += 1
        return closed

    async def maybe_trigger(self, guild_id: int) -> List[ReelectionSession]:
        """Open automatic sessions for administrators due for review.

        An administrator is due when their tenure exceeds the minimum, no
        session or impeachment is ongoing against them, and no session was
        started for them within the cadence window.
        """
        now = self.clock()
        min_tenure = self.settings.reelection_min_tenure_days * SECONDS_PER_DAY
        cadence = self.settings.reelection_cadence_hours * SECONDS_PER_HOUR

        async with self.db.read() as conn:
            admins = await AdministratorRepository.list_active(conn, guild_id)

        opened: List[ReelectionSession] = []
        for admin in admins:
            if now - admin.appointed_at <= min_tenure:
                continue
            async with self.db.read() as conn:
                if await ReelectionSessionRepository.get_ongoing(conn, guild_id, admin.user_id) is not None:
                    continue
                if await ImpeachmentRepository.get_ongoing(conn, guild_id, admin.user_id) is not None:
                    continue
                last_started = await ReelectionSessionRepository.latest_started_at(conn, guild_id, admin.user_id)
            if last_started is not None and now - last_started < cadence:
                continue

            try:
                opened.append(
                    await self.create_session(guild_id, admin.user_id, auto_triggered=True, reason=AUTO_TRIGGER_REASON)
                )
            except ConflictError:
                logger.debug("[REELECTION] Session for %s already exists; trigger skipped", admin.user_id)
        return opened

    async def statistics(self, guild_id: int) -> List[SessionStatistics]:
        now = self.clock()
        stats: List[SessionStatistics] = []
        async with self.db.read() as conn:
            sessions = await ReelectionSessionRepository.list_ongoing(conn, guild_id)
            for session in sessions:
                counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.REELECTION, session.id)
                admin = await AdministratorRepository.get_active(conn, guild_id, session.admin_user_id)
                tenure = whole_days_between(admin.appointed_at, now) if admin else 0
                stats.append(SessionStatistics(session=session, counts=counts, tenure_days=tenure))
        return stats
