"""
Governance record types.

Enums for election, session, and impeachment states and dataclasses for one
row of each governance table. Repositories build these from database rows;
engines and cogs only ever see these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ElectionType(Enum):
    """Why an election was started."""

    INITIAL = "initial"
    REELECTION = "reelection"

    def __str__(self) -> str:
        return self.value


class ElectionStatus(Enum):
    """Election phases. The last two are terminal."""

    PREPARATION = "preparation"
    CANDIDATE_REGISTRATION = "candidate_registration"
    VOTING = "voting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (ElectionStatus.COMPLETED, ElectionStatus.CANCELLED)


OPEN_ELECTION_STATUSES = (
    ElectionStatus.PREPARATION,
    ElectionStatus.CANDIDATE_REGISTRATION,
    ElectionStatus.VOTING,
)


class Visibility(Enum):
    """Whether an election ballot may be shown in public tallies."""

    PUBLIC = "public"
    PRIVATE = "private"

    def __str__(self) -> str:
        return self.value


class SessionStatus(Enum):
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class SessionOutcome(Enum):
    """Result recorded on a completed reelection session."""

    REELECTED = "reelected"
    REMOVED = "removed"

    def __str__(self) -> str:
        return self.value


class ImpeachmentStatus(Enum):
    ONGOING = "ongoing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class ProceedingKind(Enum):
    """Which proceeding table a ballot in ``proceeding_ballots`` belongs to."""

    REELECTION = "reelection"
    IMPEACHMENT = "impeachment"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class MemberProfile:
    """Profile data consumed from the profile store.

    Attributes:
        cohort_label: Raw cohort label as entered by the member ("7班", "Class 7").
        supervision_rating: First eligibility score.
        positivity_rating: Second eligibility score.
    """
    guild_id: int
    user_id: int
    cohort_label: str
    supervision_rating: int
    positivity_rating: int
    display_name: str = ""


@dataclass(slots=True)
class Election:
    id: int
    guild_id: int
    election_type: ElectionType
    status: ElectionStatus
    started_at: int
    registration_ends_at: int
    voting_ends_at: int
    initiated_by: Optional[int] = None
    ended_at: Optional[int] = None
    results: Optional[Dict] = None


@dataclass(slots=True)
class Candidate:
    """A registered candidate. ``candidate_code`` never changes once assigned."""
    id: int
    election_id: int
    user_id: int
    cohort: str
    sequence: int
    candidate_code: str
    applied_at: int
    display_name: str = ""
    supervision_rating: int = 0
    positivity_rating: int = 0
    manifesto: str = ""
    is_approved: bool = True


@dataclass(slots=True)
class ElectionBallot:
    election_id: int
    voter_id: int
    candidate_code: str
    visibility: Visibility
    cast_at: int


@dataclass(slots=True)
class Administrator:
    id: int
    guild_id: int
    user_id: int
    cohort: str
    appointed_at: int
    is_active: bool = True
    term_ends_at: Optional[int] = None
    election_id: Optional[int] = None


@dataclass(slots=True)
class ReelectionSession:
    """A referendum on one administrator's continued tenure.

    ``initiator_id`` is None when the session was opened by the periodic scan.
    """
    id: int
    guild_id: int
    admin_user_id: int
    started_at: int
    required_votes: int
    status: SessionStatus = SessionStatus.ONGOING
    initiator_id: Optional[int] = None
    auto_triggered: bool = False
    trigger_reason: str = ""
    ended_at: Optional[int] = None
    outcome: Optional[SessionOutcome] = None


@dataclass(slots=True)
class ImpeachmentRecord:
    id: int
    guild_id: int
    admin_user_id: int
    initiator_id: int
    initiated_at: int
    required_votes: int
    status: ImpeachmentStatus = ImpeachmentStatus.ONGOING
    reason: str = ""
    ended_at: Optional[int] = None
    support_votes: int = 0
    oppose_votes: int = 0
    total_votes: int = 0


@dataclass(slots=True)
class VoteCounts:
    """Support/oppose totals for a reelection session or impeachment record."""
    support: int = 0
    oppose: int = 0

    @property
    def total(self) -> int:
        return self.support + self.oppose


@dataclass(slots=True)
class CohortTally:
    """Ballot counts for one cohort, keyed by candidate code."""
    cohort: str
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def winner_code(self) -> Optional[str]:
        """Code with strictly the most ballots, or None on a tie or no ballots."""
        if not self.counts:
            return None
        top = max(self.counts.values())
        if top <= 0:
            return None
        leaders = [code for code, count in self.counts.items() if count == top]
        return leaders[0] if len(leaders) == 1 else None


@dataclass(slots=True)
class CohortResult:
    """Outcome of one cohort at finalisation."""
    cohort: str
    counts: Dict[str, int]
    winner_code: Optional[str] = None
    winner_user_id: Optional[int] = None
    seated: bool = False
    note: str = ""

    def to_dict(self) -> Dict:
        return {
            "cohort": self.cohort,
            "counts": dict(self.counts),
            "winner_code": self.winner_code,
            "winner_user_id": self.winner_user_id,
            "seated": self.seated,
            "note": self.note,
        }


@dataclass(slots=True)
class ElectionResult:
    election_id: int
    cohorts: List[CohortResult] = field(default_factory=list)
    total_ballots: int = 0

    @property
    def winners(self) -> List[CohortResult]:
        return [c for c in self.cohorts if c.winner_code is not None]

    def to_dict(self) -> Dict:
        return {
            "election_id": self.election_id,
            "total_ballots": self.total_ballots,
            "cohorts": [c.to_dict() for c in self.cohorts],
        }
