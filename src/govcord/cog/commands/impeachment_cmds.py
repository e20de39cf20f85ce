"""
Impeachment commands.

``impeachment_vote`` takes ``support``: True backs the administrator,
False backs the impeachment.
"""

import discord
from discord.ext import commands

from govcord.datatypes.discord_datatypes import UserID
from govcord.datatypes.governance_datatypes import ImpeachmentStatus
from govcord.governance.access import AccessTier
from govcord.cog.commands.governance_base import GovernanceCog
from govcord.util.format_utils import humanize_timestamp
from govcord.util.logger import get_logger

logger = get_logger("impeachment_commands")


class ImpeachmentCommandsCog(GovernanceCog):
    """Impeachment proceeding commands."""

    def __init__(self, discord_bot_instance, governance):
        super().__init__(discord_bot_instance, governance)
        logger.info("[IMPEACHMENT CMDS] Impeachment cog loaded")

    @commands.slash_command(name="open_impeachment", description="Start impeachment proceedings against an administrator.")
    async def open_impeachment(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator to impeach"),
        reason: discord.Option(str, "Why the administrator should be removed", required=False, default=""),
    ):
        admin_id = UserID.from_user(admin).to_int()

        async def action(guild_id: int, user_id: int):
            record = await self.governance.impeachment.initiate(guild_id, admin_id, user_id, reason or "")
            await ctx.respond(
                f"Impeachment #{record.id} against <@{admin_id}> is open; {record.required_votes} ballots are needed.",
                ephemeral=True,
            )
            return record

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="impeachment_vote", description="Vote in an impeachment.")
    async def impeachment_vote(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator facing impeachment"),
        support: discord.Option(bool, "True to keep the administrator, False to remove them"),
    ):
        admin_id = UserID.from_user(admin).to_int()

        async def action(guild_id: int, user_id: int):
            record = await self.governance.impeachment.vote_for_admin(guild_id, admin_id, user_id, bool(support))
            if record.status is ImpeachmentStatus.ONGOING:
                await ctx.respond(
                    f"Your ballot was recorded ({record.total_votes}/{record.required_votes}).", ephemeral=True
                )
            else:
                await ctx.respond(f"Your ballot was recorded and closed the impeachment: {record.status}.", ephemeral=True)
            return record

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="cancel_impeachment", description="Cancel an impeachment you opened.")
    async def cancel_impeachment(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator facing impeachment"),
    ):
        admin_id = UserID.from_user(admin).to_int()

        async def action(guild_id: int, user_id: int):
            is_moderator = self._tier(ctx) >= AccessTier.MODERATOR
            record = await self.governance.impeachment.cancel(guild_id, admin_id, user_id, is_moderator)
            await ctx.respond(f"Impeachment #{record.id} was cancelled.", ephemeral=True)
            return record

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="impeachment_tally", description="Show ongoing impeachments.")
    async def impeachment_tally(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            records = await self.governance.impeachment.statistics(guild_id)
            if not records:
                await ctx.respond("There are no impeachments in progress.", ephemeral=True)
                return records
            embed = discord.Embed(title="Impeachments")
            for record in records:
                embed.add_field(
                    name=f"#{record.id}",
                    value=(
                        f"<@{record.admin_user_id}>, opened by <@{record.initiator_id}> "
                        f"{humanize_timestamp(record.initiated_at)}\n"
                        f"{record.support_votes} keep / {record.oppose_votes} remove, "
                        f"{record.total_votes}/{record.required_votes} ballots"
                        + (f"\nReason: {record.reason}" if record.reason else "")
                    ),
                    inline=False,
                )
            await ctx.respond(embed=embed, ephemeral=True)
            return records

        return await self._invoke(ctx, AccessTier.MEMBER, action)


def setup(discord_bot_instance, governance):
    discord_bot_instance.add_cog(ImpeachmentCommandsCog(discord_bot_instance, governance))
