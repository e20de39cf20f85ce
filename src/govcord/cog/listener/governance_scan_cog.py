"""Background scan cog for Govcord.

Registers the three governance scans for every guild the bot is in:

- ``election-trigger``   every ``election_scan_interval_seconds``
- ``reelection-trigger`` every ``reelection_scan_interval_seconds``
- ``deadlines``          every ``deadline_scan_interval_seconds``

Each newly registered guild also gets one ``privilege-sync`` check so role
drift left over from downtime shows up in the log.

Handles are keyed by (guild, label) in the ``GovernanceScheduler`` so a
repeated ``on_ready`` (after a reconnect) replaces rather than duplicates
the loops.
"""

from __future__ import annotations

import discord
from discord.ext import commands

from govcord.datatypes.discord_datatypes import GuildID
from govcord.governance.scans import DEADLINES, ELECTION_TRIGGER, REELECTION_TRIGGER
from govcord.governance.service import GovernanceService
from govcord.util.logger import get_logger

logger = get_logger("governance_scan_cog")


class GovernanceScanCog(commands.Cog):
    """Wires periodic governance scans to the guilds the bot can see."""

    def __init__(self, bot: discord.Bot, governance: GovernanceService) -> None:
        self.bot = bot
        self.governance = governance

    def _intervals(self) -> dict[str, float]:
        settings = self.governance.settings
        return {
            ELECTION_TRIGGER: settings.election_scan_interval_seconds,
            REELECTION_TRIGGER: settings.reelection_scan_interval_seconds,
            DEADLINES: settings.deadline_scan_interval_seconds,
        }

    def register_guild(self, guild: discord.Guild) -> None:
        guild_id = GuildID.from_guild(guild).to_int()
        callbacks = self.governance.scans.callbacks
        for label, interval in self._intervals().items():
            self.governance.scheduler.register(guild_id, label, interval, callbacks[label])

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        for guild in self.bot.guilds:
            self.register_guild(guild)
            await self.governance.scans.privilege_sync_scan(guild.id)
        logger.info("[SCAN] Governance scans registered for %d guilds", len(self.bot.guilds))

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        self.register_guild(guild)
        await self.governance.scans.privilege_sync_scan(guild.id)
        logger.info("[SCAN] Joined guild %s; scans registered", guild.id)

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self.governance.scheduler.dispose_guild(GuildID.from_guild(guild).to_int())
        logger.info("[SCAN] Left guild %s; scans disposed", guild.id)

    def cog_unload(self) -> None:
        for guild in self.bot.guilds:
            self.governance.scheduler.dispose_guild(guild.id)
        logger.info("[SCAN] Stopped")


def setup(bot: discord.Bot, governance: GovernanceService) -> None:
    bot.add_cog(GovernanceScanCog(bot, governance))
