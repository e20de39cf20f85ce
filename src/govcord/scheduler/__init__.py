"""
Scheduling for Govcord.

- **governance_scheduler.py**: One asyncio task per (guild, scan label),
  replaced on re-registration and disposed per guild or on shutdown.
"""
