"""
Discord cogs for Govcord.

- **commands/**: slash commands for elections, reelection votes and
  impeachments, gated by the member/trusted/moderator/owner tiers.
- **listener/**: the scan cog that registers periodic governance scans per guild.
"""
