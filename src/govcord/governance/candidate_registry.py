"""
Candidate Registry.

Checks eligibility during an election's registration window and assigns
each candidate a code made of the cohort numeral and a two-digit sequence
("701", "702", ...). Codes are fixed at registration; a withdrawal leaves a
gap rather than renumbering later candidates.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List

import aiosqlite

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import Candidate, Election, ElectionStatus
from govcord.governance.clock import Clock, system_clock
from govcord.governance.cohort import normalize_cohort
from govcord.governance.collaborators import NotificationSink, ProfileStore
from govcord.governance.election_naming import election_name
from govcord.governance.errors import (
    ConflictError,
    DeadlinePassedError,
    IneligibleError,
    InvalidPhaseError,
    NotFoundError,
    ValidationError,
    translate_integrity_error,
)
from govcord.governance.power_transfer import announce
from govcord.repositories.candidate_repo import CandidateRepository
from govcord.repositories.election_repo import ElectionRepository
from govcord.util.logger import get_logger

logger = get_logger("candidate_registry")

MAX_SEQUENCE = 99


class CandidateRegistry:
    def __init__(
        self,
        db: ConnectionManager,
        profiles: ProfileStore,
        notifier: NotificationSink,
        settings: GovernanceSettings,
        clock: Clock = system_clock,
    ) -> None:
        self.db = db
        self.profiles = profiles
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    async def _election(self, election_id: int) -> Election:
        async with self.db.read() as conn:
            election = await ElectionRepository.get(conn, election_id)
        if election is None:
            raise NotFoundError(f"Election #{election_id} does not exist.")
        return election

    async def register(self, election_id: int, user_id: int, manifesto: str = "") -> Candidate:
        """Register ``user_id`` as a candidate and assign their code.

        Raises:
            NotFoundError: Unknown election.
            InvalidPhaseError: The election is not in candidate registration.
            DeadlinePassedError: The registration deadline has passed.
            ValidationError: The user has no profile.
            IneligibleError: A rating is below its configured minimum.
            MalformedCohortError: The profile's cohort label cannot be read.
            ConflictError: The user is already registered, or the cohort is full.
        """
        election = await self._election(election_id)
        if election.status is not ElectionStatus.CANDIDATE_REGISTRATION:
            raise InvalidPhaseError(f"Election #{election_id} is not accepting candidates ({election.status}).")
        now = self.clock()
        if now >= election.registration_ends_at:
            raise DeadlinePassedError("The registration deadline for this election has passed.")

        profile = await self.profiles.get(user_id, election.guild_id)
        if profile is None:
            raise ValidationError("You need a member profile before you can run for office.")
        if profile.supervision_rating < self.settings.min_supervision_rating:
            raise IneligibleError(
                f"Your supervision rating ({profile.supervision_rating}) is below the required "
                f"{self.settings.min_supervision_rating}."
            )
        if profile.positivity_rating < self.settings.min_positivity_rating:
            raise IneligibleError(
                f"Your positivity rating ({profile.positivity_rating}) is below the required "
                f"{self.settings.min_positivity_rating}."
            )
        cohort = normalize_cohort(profile.cohort_label)

        async with self.db.transaction() as conn:
            existing = await CandidateRepository.get_by_user(conn, election_id, user_id)
            if existing is not None:
                raise ConflictError(f"You are already registered with code {existing.candidate_code}.")

            sequence = await CandidateRepository.next_sequence(conn, election_id, cohort)
            if sequence > MAX_SEQUENCE:
                raise ConflictError(f"Cohort {cohort} has no candidate codes left in this election.")

            try:
                candidate = await CandidateRepository.insert(
                    conn,
                    election_id=election_id,
                    user_id=user_id,
                    cohort=cohort,
                    sequence=sequence,
                    applied_at=now,
                    display_name=profile.display_name,
                    supervision_rating=profile.supervision_rating,
                    positivity_rating=profile.positivity_rating,
                    manifesto=manifesto.strip(),
                )
            except aiosqlite.IntegrityError as exc:
                raise translate_integrity_error(exc, "You are already registered in this election.") from exc

        logger.info(
            "[REGISTRY] %s registered for cohort %s in election %s with code %s",
            user_id, cohort, election_id, candidate.candidate_code,
        )
        await announce(
            self.notifier,
            election.guild_id,
            f"<@{user_id}> is running for cohort {cohort} in {election_name(election)} as candidate {candidate.candidate_code}.",
        )
        return candidate

    async def withdraw(self, election_id: int, user_id: int) -> Candidate:
        """Remove the user's candidacy. Other candidates keep their codes."""
        election = await self._election(election_id)
        if election.status is not ElectionStatus.CANDIDATE_REGISTRATION:
            raise InvalidPhaseError("Candidacies can only be withdrawn during registration.")

        async with self.db.transaction() as conn:
            candidate = await CandidateRepository.get_by_user(conn, election_id, user_id)
            if candidate is None:
                raise NotFoundError("You are not registered in this election.")
            await CandidateRepository.delete(conn, election_id, user_id)

        logger.info("[REGISTRY] %s withdrew code %s from election %s", user_id, candidate.candidate_code, election_id)
        await announce(
            self.notifier,
            election.guild_id,
            f"<@{user_id}> withdrew candidacy {candidate.candidate_code} from {election_name(election)}.",
        )
        return candidate

    async def list_approved(self, election_id: int) -> List[Candidate]:
        async with self.db.read() as conn:
            return await CandidateRepository.list_for_election(conn, election_id, approved_only=True)

    async def grouped_by_cohort(self, election_id: int) -> Dict[str, List[Candidate]]:
        """Approved candidates keyed by cohort, in numeric cohort order."""
        grouped: Dict[str, List[Candidate]] = OrderedDict()
        for candidate in await self.list_approved(election_id):
            grouped.setdefault(candidate.cohort, []).append(candidate)
        return grouped
