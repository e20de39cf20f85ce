"""
Shared plumbing for governance command cogs.

Every command resolves the guild, checks the invoker's tier, calls one
engine operation and answers ephemerally on failure. ``GovernanceError``
messages are shown to the user as-is; anything else is logged and answered
with a generic message.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

import discord
from discord.ext import commands

from govcord.datatypes.discord_datatypes import GuildID, UserID
from govcord.governance.access import AccessTier, require_tier, resolve_tier
from govcord.governance.errors import GovernanceError
from govcord.governance.service import GovernanceService
from govcord.util.logger import get_logger

logger = get_logger("governance_commands")

GENERIC_FAILURE = "Something went wrong while processing that command. Please try again later."


class GovernanceCog(commands.Cog):
    """Base class; subclasses add slash commands."""

    def __init__(self, discord_bot_instance, governance: GovernanceService):
        self.discord_bot_instance = discord_bot_instance
        self.governance = governance

    @property
    def trusted_role_names(self):
        return self.governance.settings.trusted_role_names

    async def _ensure_guild_context(self, ctx: discord.ApplicationContext) -> Optional[int]:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return None
        return GuildID(ctx.guild_id).to_int()

    def _tier(self, ctx: discord.ApplicationContext) -> AccessTier:
        return resolve_tier(ctx.user, self.trusted_role_names)

    async def _invoke(
        self,
        ctx: discord.ApplicationContext,
        required: AccessTier,
        action: Callable[[int, int], Awaitable[Any]],
    ) -> Any:
        """Run ``action(guild_id, user_id)`` and translate errors into ephemeral replies.

        Returns the action's result, or None if the command was rejected.
        """
        guild_id = await self._ensure_guild_context(ctx)
        if guild_id is None:
            return None
        try:
            require_tier(ctx.user, required, self.trusted_role_names)
            return await action(guild_id, UserID.from_user(ctx.user).to_int())
        except GovernanceError as exc:
            await ctx.respond(exc.message, ephemeral=True)
            return None
        except Exception:
            logger.exception("[GOVERNANCE CMDS] Command failed in guild %s", guild_id)
            await ctx.respond(GENERIC_FAILURE, ephemeral=True)
            return None
