from typing import Any, Dict, List


class GovernanceSettings:
    """Helper exposing typed accessors for the ``governance`` configuration block.

    This class intentionally provides a minimal, explicit API (`get`,
    `as_dict`, and convenience properties) and does not implement the full
    mapping protocol. Every property falls back to the documented default
    when the key is missing.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping (shallow copy recommended by callers)."""
        return self.data

    # Elections
    @property
    def max_administrators(self) -> int:
        return int(self.data.get("max_administrators", 8))

    @property
    def registration_hours(self) -> float:
        return float(self.data.get("registration_hours", 24))

    @property
    def voting_hours(self) -> float:
        return float(self.data.get("voting_hours", 48))

    @property
    def min_supervision_rating(self) -> int:
        return int(self.data.get("min_supervision_rating", 90))

    @property
    def min_positivity_rating(self) -> int:
        return int(self.data.get("min_positivity_rating", 30))

    # Reelection
    @property
    def reelection_required_votes(self) -> int:
        return int(self.data.get("reelection_required_votes", 3))

    @property
    def reelection_min_tenure_days(self) -> float:
        return float(self.data.get("reelection_min_tenure_days", 7))

    @property
    def reelection_cadence_hours(self) -> float:
        return float(self.data.get("reelection_cadence_hours", 168))

    @property
    def session_max_age_hours(self) -> float:
        return float(self.data.get("session_max_age_hours", 72))

    # Impeachment
    @property
    def impeachment_min_tenure_days(self) -> float:
        return float(self.data.get("impeachment_min_tenure_days", 1))

    @property
    def impeachment_cooldown_hours(self) -> float:
        return float(self.data.get("impeachment_cooldown_hours", 168))

    @property
    def impeachment_rate_limit(self) -> int:
        return int(self.data.get("impeachment_rate_limit", 1))

    @property
    def impeachment_rate_window_hours(self) -> float:
        return float(self.data.get("impeachment_rate_window_hours", 24))

    @property
    def impeachment_quorum_percent(self) -> float:
        return float(self.data.get("impeachment_quorum_percent", 10))

    @property
    def impeachment_quorum_min(self) -> int:
        return int(self.data.get("impeachment_quorum_min", 3))

    @property
    def impeachment_quorum_max(self) -> int:
        return int(self.data.get("impeachment_quorum_max", 15))

    # Scans
    @property
    def election_scan_interval_seconds(self) -> float:
        return float(self.data.get("election_scan_interval_seconds", 3600))

    @property
    def reelection_scan_interval_seconds(self) -> float:
        return float(self.data.get("reelection_scan_interval_seconds", 3600))

    @property
    def deadline_scan_interval_seconds(self) -> float:
        return float(self.data.get("deadline_scan_interval_seconds", 300))

    # Discord wiring
    @property
    def administrator_role_name(self) -> str:
        return str(self.data.get("administrator_role_name") or "Elected Administrator")

    @property
    def trusted_role_names(self) -> List[str]:
        names = self.data.get("trusted_role_names", ["Trusted"])
        if isinstance(names, str):
            return [names]
        return [str(n) for n in names] if isinstance(names, list) else []

    @property
    def announcement_channel_name(self) -> str:
        return str(self.data.get("announcement_channel_name") or "elections")
