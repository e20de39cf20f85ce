"""Human-friendly labels for elections."""

from datetime import datetime, timezone

from govcord.datatypes.governance_datatypes import Election, ElectionStatus, ElectionType

_TYPE_LABELS = {
    ElectionType.INITIAL: "Administrator election",
    ElectionType.REELECTION: "Administrator by-election",
}

_STATUS_LABELS = {
    ElectionStatus.PREPARATION: "Preparing",
    ElectionStatus.CANDIDATE_REGISTRATION: "Candidate registration",
    ElectionStatus.VOTING: "Voting",
    ElectionStatus.COMPLETED: "Completed",
    ElectionStatus.CANCELLED: "Cancelled",
}


def election_name(election: Election) -> str:
    """e.g. ``"2026-10-18 Administrator election (#000042)"``."""
    day = datetime.fromtimestamp(election.started_at, tz=timezone.utc).strftime("%Y-%m-%d")
    return f"{day} {_TYPE_LABELS[election.election_type]} (#{election.id:06d})"


def status_label(status: ElectionStatus) -> str:
    return _STATUS_LABELS[status]
