"""
Voting Ledger & Tally.

Stores one election ballot per voter and counts ballots per candidate code,
grouped by the cohort of the chosen candidate.
"""

from __future__ import annotations

from typing import Dict, List

import aiosqlite

from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import (
    CohortTally,
    ElectionBallot,
    ElectionStatus,
    Visibility,
)
from govcord.governance.clock import Clock, system_clock
from govcord.governance.collaborators import ProfileStore
from govcord.governance.errors import (
    ConflictError,
    DeadlinePassedError,
    InvalidPhaseError,
    NotFoundError,
    ValidationError,
    translate_integrity_error,
)
from govcord.repositories.ballot_repo import ElectionBallotRepository
from govcord.repositories.candidate_repo import CandidateRepository
from govcord.repositories.election_repo import ElectionRepository
from govcord.util.logger import get_logger

logger = get_logger("voting_ledger")


class VotingLedger:
    def __init__(self, db: ConnectionManager, profiles: ProfileStore, clock: Clock = system_clock) -> None:
        self.db = db
        self.profiles = profiles
        self.clock = clock

    async def cast(
        self,
        election_id: int,
        voter_id: int,
        code: str,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> ElectionBallot:
        """Record ``voter_id``'s ballot for the candidate with ``code``.

        Raises:
            NotFoundError: Unknown election or no approved candidate with that code.
            InvalidPhaseError: The election is not in its voting phase.
            DeadlinePassedError: The voting deadline has passed.
            ValidationError: The voter has no profile or is a candidate.
            ConflictError: The voter already voted in this election.
        """
        code = code.strip()
        async with self.db.read() as conn:
            election = await ElectionRepository.get(conn, election_id)
        if election is None:
            raise NotFoundError(f"Election #{election_id} does not exist.")
        if election.status is not ElectionStatus.VOTING:
            raise InvalidPhaseError(f"Election #{election_id} is not open for voting ({election.status}).")
        now = self.clock()
        if now >= election.voting_ends_at:
            raise DeadlinePassedError("The voting deadline for this election has passed.")

        if await self.profiles.get(voter_id, election.guild_id) is None:
            raise ValidationError("You need a member profile before you can vote.")

        async with self.db.transaction() as conn:
            candidate = await CandidateRepository.get_by_code(conn, election_id, code)
            if candidate is None or not candidate.is_approved:
                raise NotFoundError(f"No approved candidate has code {code}.")
            if await CandidateRepository.get_by_user(conn, election_id, voter_id) is not None:
                raise ValidationError("Candidates cannot vote in their own election.")
            if await ElectionBallotRepository.get_for_voter(conn, election_id, voter_id) is not None:
                raise ConflictError("You have already voted in this election.")

            try:
                ballot = await ElectionBallotRepository.insert(conn, election_id, voter_id, code, visibility, now)
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, "You have already voted in this election.") from exc

        logger.info("[LEDGER] Ballot recorded in election %s (%s)", election_id, visibility)
        return ballot

    async def tally(self, election_id: int) -> List[CohortTally]:
        """Ballot counts per code, one entry per cohort with approved candidates.

        Candidates without ballots appear with a count of 0.
        """
        async with self.db.read() as conn:
            candidates = await CandidateRepository.list_for_election(conn, election_id, approved_only=True)
            counts = await ElectionBallotRepository.count_by_code(conn, election_id)

        tallies: Dict[str, CohortTally] = {}
        for candidate in candidates:
            tally = tallies.setdefault(candidate.cohort, CohortTally(cohort=candidate.cohort))
            tally.counts[candidate.candidate_code] = counts.get(candidate.candidate_code, 0)
        return list(tallies.values())

    async def ballot_summary(self, election_id: int) -> Dict[Visibility, int]:
        async with self.db.read() as conn:
            return await ElectionBallotRepository.count_by_visibility(conn, election_id)
