"""
Database layer for Govcord.

- **db_connection.py**: One long-lived aiosqlite connection with serialised
  write transactions.
- **db_schema.py**: Tables, uniqueness indexes and guard triggers for the
  governance records.
- **migration.py**: One-time conversion of legacy (admin, guild) keyed
  reelection ballots into session-scoped ballots.
"""
