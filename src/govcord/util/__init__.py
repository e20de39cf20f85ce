"""
Utility functions and helpers for Govcord.

This package provides reusable utilities:

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation. Suppresses noise from
  Discord and networking internals. Uses prompt_toolkit for console output so
  log lines do not interfere with an interactive prompt.

- **format_utils.py**: Small formatting helpers for command replies and
  announcements (UTC timestamps from unix seconds, tenure in days, rounded
  percentages).
"""
