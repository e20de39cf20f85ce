"""
Governance error taxonomy.

Validation and conflict errors are raised to the invoker and leave no state
behind (the surrounding transaction rolls back). External collaborator and
scan errors are logged by the engines and never reverse a governance
transition.
"""

from __future__ import annotations

import aiosqlite

from govcord.database.db_schema import (
    PROCEEDING_CLOSED,
    REGISTRATION_CLOSED,
    VOTER_IS_CANDIDATE,
    VOTING_CLOSED,
)


class GovernanceError(Exception):
    """Base class for governance failures. ``message`` is safe to show to users."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GovernanceError):
    """The request is invalid in the current state (missing profile, past deadline, ...)."""


class ConflictError(GovernanceError):
    """The request collides with existing state (duplicate ballot, ongoing proceeding, ...)."""


class ExternalCollaboratorError(GovernanceError):
    """A privilege grant/revoke or notification failed."""


class ScanError(GovernanceError):
    """A periodic scan failed for one guild."""

    def __init__(self, guild_id: int, label: str, cause: BaseException) -> None:
        super().__init__(f"{label} scan failed for guild {guild_id}: {cause}")
        self.guild_id = guild_id
        self.label = label
        self.cause = cause


class NotFoundError(ValidationError):
    pass


class InvalidPhaseError(ValidationError):
    pass


class NoCandidatesError(ValidationError):
    pass


class DeadlinePassedError(ValidationError):
    pass


class IneligibleError(ValidationError):
    pass


class MalformedCohortError(ValidationError):
    pass


class SeatCeilingError(ConflictError):
    pass


class CooldownError(ConflictError):
    pass


class RateLimitedError(ConflictError):
    pass


def translate_integrity_error(exc: aiosqlite.IntegrityError, default: str) -> GovernanceError:
    """Map a constraint violation to the governance error users should see.

    Guard triggers abort with known messages and become phase or validation
    errors; any other constraint (the uniqueness indexes) is a conflict
    described by ``default``.
    """
    text = str(exc)
    if REGISTRATION_CLOSED in text:
        return InvalidPhaseError("This election is not accepting candidates.")
    if VOTING_CLOSED in text:
        return InvalidPhaseError("This election is not accepting ballots.")
    if VOTER_IS_CANDIDATE in text:
        return ValidationError("Candidates cannot vote in their own election.")
    if PROCEEDING_CLOSED in text:
        return InvalidPhaseError("This proceeding has already been closed.")
    return ConflictError(default)
