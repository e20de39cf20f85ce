"""
Configuration management for Govcord.

- **app_configuration.py**: File-locked YAML configuration loader for global
  settings. Falls back gracefully on missing or malformed config files.

- **governance_settings.py**: Typed accessors for the ``governance`` block:
  seat ceiling, registration and voting windows, eligibility minimums,
  reelection and impeachment quorum/tenure/cooldown parameters, scan
  intervals and the Discord role/channel names used by the collaborators.
"""
