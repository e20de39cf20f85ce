from pathlib import Path

import pytest
import yaml

from govcord.configuration.app_configuration import AppConfig
from govcord.configuration.governance_settings import GovernanceSettings


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_payload = {
        "database": {"path": str(tmp_path / "gov.db")},
        "governance": {
            "max_administrators": 5,
            "registration_hours": 12,
            "impeachment_quorum_percent": 20,
            "trusted_role_names": ["Trusted", "Veteran"],
        },
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.database_path == (tmp_path / "gov.db").resolve()
    governance = config.governance
    assert governance.max_administrators == 5
    assert governance.registration_hours == pytest.approx(12.0)
    assert governance.impeachment_quorum_percent == pytest.approx(20.0)
    assert governance.trusted_role_names == ["Trusted", "Veteran"]
    # Unset keys keep their defaults
    assert governance.voting_hours == pytest.approx(48.0)
    assert governance.reelection_required_votes == 3


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.database_path == Path("./data/app.db").resolve()
    governance = config.governance
    assert governance.max_administrators == 8
    assert governance.min_supervision_rating == 90
    assert governance.min_positivity_rating == 30
    assert governance.impeachment_quorum_min == 3
    assert governance.impeachment_quorum_max == 15
    assert governance.deadline_scan_interval_seconds == pytest.approx(300.0)


def test_app_config_ignores_non_mapping(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"governance": {"max_administrators": 4}}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.governance.max_administrators == 4

    config_path.write_text(yaml.safe_dump({"governance": {"max_administrators": 6}}), encoding="utf-8")
    config.reload()

    assert config.governance.max_administrators == 6
    assert config.get("governance") == {"max_administrators": 6}


def test_governance_settings_role_names_accept_single_string() -> None:
    settings = GovernanceSettings({"trusted_role_names": "Helpers", "announcement_channel_name": "votes"})

    assert settings.trusted_role_names == ["Helpers"]
    assert settings.announcement_channel_name == "votes"
    assert settings.administrator_role_name == "Elected Administrator"
    assert settings.as_dict()["trusted_role_names"] == "Helpers"


def test_shipped_config_matches_defaults() -> None:
    shipped = Path(__file__).parent.parent / "config" / "app_config.yml"
    config = AppConfig(shipped)

    assert config.governance.as_dict()["max_administrators"] == GovernanceSettings().max_administrators
    assert config.governance.session_max_age_hours == GovernanceSettings().session_max_age_hours
