"""
Govcord - community self-governance for Discord servers

Govcord runs elections of per-cohort administrators, ongoing reelection
referenda and impeachment proceedings, and is the only component allowed
to grant or revoke the elected administrator role.

Core Components:

- **Governance Engine**: Election lifecycle, candidate registry, voting
  ledger, reelection sessions, impeachments and the power transfer executor
- **Persistence**: A single aiosqlite connection with storage-level
  uniqueness constraints for every "at most one" rule
- **Scans**: Per-guild periodic triggers that open elections, open
  reelection votes, and move records past their deadlines
- **Commands**: Tier-gated slash commands for members and moderators

Architecture:

- `governance/`: Engines, error taxonomy, cohort parsing, collaborators
- `repositories/`: One repository per governance table
- `database/`: Connection management, schema, legacy migration
- `scheduler/`: Per-(guild, label) periodic task registry
- `cog/`: Discord command and listener cogs
- `configuration/`: YAML configuration and typed governance settings
- `datatypes/`: Snowflake wrappers and governance records
- `util/`: Logging and formatting helpers
"""
