"""
Election Lifecycle Manager.

Drives an election through candidate registration, voting and completion.
At most one non-terminal election exists per guild; the partial unique
index on ``elections`` enforces that even when two initiations race.

Finalisation first claims the election by moving it to ``completed`` and
only then seats winners, so a second concurrent ``finalize`` fails with a
phase error instead of appointing twice.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import aiosqlite

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import (
    OPEN_ELECTION_STATUSES,
    Administrator,
    CohortResult,
    Election,
    ElectionResult,
    ElectionStatus,
    ElectionType,
    Visibility,
)
from govcord.governance.candidate_registry import CandidateRegistry
from govcord.governance.clock import Clock, system_clock
from govcord.governance.cohort import cohort_sort_key
from govcord.governance.collaborators import NotificationSink
from govcord.governance.election_naming import election_name
from govcord.governance.errors import (
    ConflictError,
    InvalidPhaseError,
    NoCandidatesError,
    NotFoundError,
    translate_integrity_error,
)
from govcord.governance.power_transfer import PowerTransferExecutor, announce
from govcord.governance.voting_ledger import VotingLedger
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.candidate_repo import CandidateRepository
from govcord.repositories.election_repo import ElectionRepository
from govcord.util.format_utils import SECONDS_PER_HOUR, humanize_timestamp
from govcord.util.logger import get_logger

logger = get_logger("election_lifecycle")


@dataclass(slots=True)
class ElectionOverview:
    """Snapshot used by the election-status command."""
    guild_id: int
    seat_ceiling: int
    administrators: List[Administrator] = field(default_factory=list)
    election: Optional[Election] = None
    candidates_by_cohort: Dict[str, int] = field(default_factory=dict)
    ballots_by_visibility: Dict[Visibility, int] = field(default_factory=dict)

    @property
    def seats_by_cohort(self) -> Dict[str, int]:
        counts = Counter(a.cohort for a in self.administrators)
        return {cohort: counts[cohort] for cohort in sorted(counts, key=cohort_sort_key)}

    @property
    def open_seats(self) -> int:
        return max(0, self.seat_ceiling - len(self.administrators))


class ElectionLifecycleManager:
    def __init__(
        self,
        db: ConnectionManager,
        registry: CandidateRegistry,
        ledger: VotingLedger,
        executor: PowerTransferExecutor,
        notifier: NotificationSink,
        settings: GovernanceSettings,
        clock: Clock = system_clock,
    ) -> None:
        self.db = db
        self.registry = registry
        self.ledger = ledger
        self.executor = executor
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get(self, election_id: int) -> Election:
        async with self.db.read() as conn:
            election = await ElectionRepository.get(conn, election_id)
        if election is None:
            raise NotFoundError(f"Election #{election_id} does not exist.")
        return election

    async def get_open(self, guild_id: int) -> Optional[Election]:
        async with self.db.read() as conn:
            return await ElectionRepository.get_open(conn, guild_id)

    async def require_open(self, guild_id: int) -> Election:
        election = await self.get_open(guild_id)
        if election is None:
            raise NotFoundError("There is no election in progress on this server.")
        return election

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def initiate(
        self,
        guild_id: int,
        election_type: ElectionType = ElectionType.INITIAL,
        initiated_by: Optional[int] = None,
    ) -> Election:
        """Open a new election in the candidate registration phase.

        Raises:
            ConflictError: The guild already has a non-terminal election.
        """
        now = self.clock()
        registration_ends_at = now + int(self.settings.registration_hours * SECONDS_PER_HOUR)
        voting_ends_at = registration_ends_at + int(self.settings.voting_hours * SECONDS_PER_HOUR)

        async with self.db.transaction() as conn:
            current = await ElectionRepository.get_open(conn, guild_id)
            if current is not None:
                raise ConflictError(f"{election_name(current)} is still in progress.")
            try:
                election = await ElectionRepository.insert(
                    conn,
                    guild_id=guild_id,
                    election_type=election_type,
                    status=ElectionStatus.CANDIDATE_REGISTRATION,
                    started_at=now,
                    registration_ends_at=registration_ends_at,
                    voting_ends_at=voting_ends_at,
                    initiated_by=initiated_by,
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, "An election is already in progress on this server.") from exc

        logger.info("[ELECTION] Opened %s in guild %s", election_name(election), guild_id)
        await announce(
            self.notifier,
            guild_id,
            f"{election_name(election)} is open for candidates until "
            f"{humanize_timestamp(registration_ends_at)}. Voting closes {humanize_timestamp(voting_ends_at)}.",
        )
        return election

    async def begin_voting(self, election_id: int) -> Election:
        """Close registration and open voting.

        Raises:
            InvalidPhaseError: The election is not in candidate registration.
            NoCandidatesError: No approved candidate is registered.
        """
        async with self.db.transaction() as conn:
            election = await ElectionRepository.get(conn, election_id)
            if election is None:
                raise NotFoundError(f"Election #{election_id} does not exist.")
            if election.status is not ElectionStatus.CANDIDATE_REGISTRATION:
                raise InvalidPhaseError(f"{election_name(election)} is not in candidate registration.")
            candidates = await CandidateRepository.count_by_cohort(conn, election_id)
            if not candidates:
                raise NoCandidatesError(f"{election_name(election)} has no approved candidates.")
            if not await ElectionRepository.transition(
                conn, election_id, ElectionStatus.VOTING, [ElectionStatus.CANDIDATE_REGISTRATION]
            ):
                raise InvalidPhaseError(f"{election_name(election)} changed phase; try again.")
            election.status = ElectionStatus.VOTING

        total = sum(candidates.values())
        logger.info("[ELECTION] Voting opened for election %s with %d candidates", election_id, total)
        await announce(
            self.notifier,
            election.guild_id,
            f"Voting is open for {election_name(election)}: {total} candidates across "
            f"{len(candidates)} cohorts. Voting closes {humanize_timestamp(election.voting_ends_at)}.",
        )
        return election

    async def finalize(self, election_id: int) -> ElectionResult:
        """Count ballots, seat each cohort's winner and complete the election.

        A cohort whose leaders tie, or that received no ballots, has no
        winner. A winner whose cohort seat is already held is not seated.

        Raises:
            InvalidPhaseError: The election is not in its voting phase.
        """
        now = self.clock()
        async with self.db.transaction() as conn:
            election = await ElectionRepository.get(conn, election_id)
            if election is None:
                raise NotFoundError(f"Election #{election_id} does not exist.")
            if not await ElectionRepository.transition(
                conn, election_id, ElectionStatus.COMPLETED, [ElectionStatus.VOTING], ended_at=now
            ):
                raise InvalidPhaseError(f"{election_name(election)} is not in its voting phase.")

        result = ElectionResult(election_id=election_id)
        candidates = {c.candidate_code: c for c in await self.registry.list_approved(election_id)}

        for tally in await self.ledger.tally(election_id):
            cohort_result = CohortResult(cohort=tally.cohort, counts=dict(tally.counts))
            result.total_ballots += sum(tally.counts.values())
            result.cohorts.append(cohort_result)

            winner_code = tally.winner_code
            if winner_code is None:
                cohort_result.note = "tie" if any(tally.counts.values()) else "no ballots"
                logger.info("[ELECTION] Cohort %s in election %s has no winner (%s)", tally.cohort, election_id, cohort_result.note)
                continue

            winner = candidates[winner_code]
            cohort_result.winner_code = winner_code
            cohort_result.winner_user_id = winner.user_id

            async with self.db.read() as conn:
                holder = await AdministratorRepository.get_active_for_cohort(conn, election.guild_id, tally.cohort)
            if holder is not None:
                cohort_result.note = "seat already held"
                continue

            try:
                admin = await self.executor.appoint(election.guild_id, winner.user_id, tally.cohort, election_id)
            except ConflictError as exc:
                cohort_result.note = exc.message
                logger.warning("[ELECTION] Could not seat %s for cohort %s: %s", winner.user_id, tally.cohort, exc.message)
                continue
            if admin.cohort != tally.cohort:
                cohort_result.note = f"winner already holds the seat for cohort {admin.cohort}"
                logger.warning(
                    "[ELECTION] %s won cohort %s but already administers cohort %s; seat left open",
                    winner.user_id, tally.cohort, admin.cohort,
                )
                continue
            cohort_result.seated = True

        async with self.db.transaction() as conn:
            await ElectionRepository.store_results(conn, election_id, result.to_dict())

        logger.info(
            "[ELECTION] Completed election %s in guild %s: %d ballots, %d winners",
            election_id, election.guild_id, result.total_ballots, len(result.winners),
        )
        await announce(self.notifier, election.guild_id, self._results_text(election, result))
        return result

    async def cancel(self, election_id: int, reason: str = "") -> Election:
        """Cancel a non-terminal election.

        Raises:
            InvalidPhaseError: The election is already completed or cancelled.
        """
        now = self.clock()
        async with self.db.transaction() as conn:
            election = await ElectionRepository.get(conn, election_id)
            if election is None:
                raise NotFoundError(f"Election #{election_id} does not exist.")
            if not await ElectionRepository.transition(
                conn, election_id, ElectionStatus.CANCELLED, OPEN_ELECTION_STATUSES, ended_at=now
            ):
                raise InvalidPhaseError(f"{election_name(election)} is already {election.status}.")
            election.status = ElectionStatus.CANCELLED
            election.ended_at = now

        logger.info("[ELECTION] Cancelled election %s in guild %s: %s", election_id, election.guild_id, reason or "no reason")
        suffix = f": {reason}" if reason else "."
        await announce(self.notifier, election.guild_id, f"{election_name(election)} was cancelled{suffix}")
        return election

    # ------------------------------------------------------------------
    # Periodic checks
    # ------------------------------------------------------------------

    async def maybe_trigger(self, guild_id: int) -> Optional[Election]:
        """Open an election when the guild has fewer administrators than the ceiling.

        Returns the new election, or None when nothing was started.
        """
        async with self.db.read() as conn:
            active = await AdministratorRepository.count_active(conn, guild_id)
            current = await ElectionRepository.get_open(conn, guild_id)
        if active >= self.settings.max_administrators or current is not None:
            return None

        election_type = ElectionType.INITIAL if active == 0 else ElectionType.REELECTION
        try:
            return await self.initiate(guild_id, election_type)
        except ConflictError:
            logger.debug("[ELECTION] Guild %s already has an election; trigger skipped", guild_id)
            return None

    async def advance_deadlines(self, guild_id: int) -> Optional[ElectionStatus]:
        """Move the guild's open election past any deadline that has elapsed.

        Registration that closes without candidates cancels the election.

        Returns:
            The status the election moved to, or None when nothing changed.
        """
        election = await self.get_open(guild_id)
        if election is None:
            return None
        now = self.clock()

        if election.status is ElectionStatus.CANDIDATE_REGISTRATION and now >= election.registration_ends_at:
            try:
                await self.begin_voting(election.id)
            except NoCandidatesError:
                await self.cancel(election.id, "no candidates registered")
                return ElectionStatus.CANCELLED
            return ElectionStatus.VOTING

        if election.status is ElectionStatus.VOTING and now >= election.voting_ends_at:
            await self.finalize(election.id)
            return ElectionStatus.COMPLETED

        return None

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def status_overview(self, guild_id: int) -> ElectionOverview:
        async with self.db.read() as conn:
            admins = await AdministratorRepository.list_active(conn, guild_id)
            election = await ElectionRepository.get_open(conn, guild_id)
            if election is None:
                recent = await ElectionRepository.list_recent(conn, guild_id, limit=1)
                election = recent[0] if recent else None

        overview = ElectionOverview(
            guild_id=guild_id,
            seat_ceiling=self.settings.max_administrators,
            administrators=admins,
            election=election,
        )
        if election is not None:
            async with self.db.read() as conn:
                by_cohort = await CandidateRepository.count_by_cohort(conn, election.id)
            overview.candidates_by_cohort = {
                cohort: by_cohort[cohort] for cohort in sorted(by_cohort, key=cohort_sort_key)
            }
            overview.ballots_by_visibility = await self.ledger.ballot_summary(election.id)
        return overview

    @staticmethod
    def _results_text(election: Election, result: ElectionResult) -> str:
        lines = [f"{election_name(election)} has closed with {result.total_ballots} ballots."]
        for cohort in result.cohorts:
            if cohort.seated:
                lines.append(f"Cohort {cohort.cohort}: <@{cohort.winner_user_id}> ({cohort.winner_code}) is elected.")
            elif cohort.winner_code:
                lines.append(f"Cohort {cohort.cohort}: {cohort.winner_code} won but was not seated ({cohort.note}).")
            else:
                lines.append(f"Cohort {cohort.cohort}: no winner ({cohort.note}).")
        return "\n".join(lines)
