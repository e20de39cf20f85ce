"""
Reelection commands.

Members back or oppose a sitting administrator in their ongoing reelection
vote; each ballot is evaluated immediately so the session resolves as soon
as it reaches quorum. Moderators can open a session on demand.
"""

import discord
from discord.ext import commands

from govcord.datatypes.discord_datatypes import UserID
from govcord.datatypes.governance_datatypes import SessionStatus
from govcord.governance.access import AccessTier
from govcord.cog.commands.governance_base import GovernanceCog
from govcord.util.format_utils import humanize_timestamp
from govcord.util.logger import get_logger

logger = get_logger("reelection_commands")


class ReelectionCommandsCog(GovernanceCog):
    """Reelection referendum commands."""

    def __init__(self, discord_bot_instance, governance):
        super().__init__(discord_bot_instance, governance)
        logger.info("[REELECTION CMDS] Reelection cog loaded")

    async def _ballot(self, ctx: discord.ApplicationContext, admin: discord.Member, is_support: bool):
        admin_id = UserID.from_user(admin).to_int()

        async def action(guild_id: int, user_id: int):
            session = await self.governance.reelection.vote_for_admin(guild_id, admin_id, user_id, is_support)
            if session.status is SessionStatus.ONGOING:
                await ctx.respond("Your ballot was recorded.", ephemeral=True)
            else:
                await ctx.respond(
                    f"Your ballot was recorded and closed the vote: {session.outcome or session.status}.",
                    ephemeral=True,
                )
            return session

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="support_reelection", description="Vote to keep an administrator in office.")
    async def support_reelection(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator under review"),
    ):
        return await self._ballot(ctx, admin, True)

    @commands.slash_command(name="oppose_reelection", description="Vote to remove an administrator from office.")
    async def oppose_reelection(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator under review"),
    ):
        return await self._ballot(ctx, admin, False)

    @commands.slash_command(name="start_reelection", description="Open a reelection vote for an administrator.")
    async def start_reelection(
        self,
        ctx: discord.ApplicationContext,
        admin: discord.Option(discord.Member, "The administrator to review"),
        reason: discord.Option(str, "Why the vote is opened", required=False, default=""),
    ):
        admin_id = UserID.from_user(admin).to_int()

        async def action(guild_id: int, user_id: int):
            session = await self.governance.reelection.create_session(
                guild_id, admin_id, initiator_id=user_id, auto_triggered=False, reason=reason or ""
            )
            await ctx.respond(
                f"Reelection vote #{session.id} for <@{admin_id}> is open; "
                f"{session.required_votes} ballots are needed.",
                ephemeral=True,
            )
            return session

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="reelection_tally", description="Show ongoing reelection votes.")
    async def reelection_tally(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            stats = await self.governance.reelection.statistics(guild_id)
            if not stats:
                await ctx.respond("There are no reelection votes in progress.", ephemeral=True)
                return stats
            embed = discord.Embed(title="Reelection votes")
            for stat in stats:
                session = stat.session
                embed.add_field(
                    name=f"#{session.id}",
                    value=(
                        f"<@{session.admin_user_id}> ({stat.tenure_days} days in office)\n"
                        f"{stat.counts.support} support / {stat.counts.oppose} oppose "
                        f"({stat.support_rate}% support), {stat.counts.total}/{session.required_votes} ballots\n"
                        f"Opened {humanize_timestamp(session.started_at)}"
                        f"{' automatically' if session.auto_triggered else ''}"
                    ),
                    inline=False,
                )
            await ctx.respond(embed=embed, ephemeral=True)
            return stats

        return await self._invoke(ctx, AccessTier.MEMBER, action)


def setup(discord_bot_instance, governance):
    discord_bot_instance.add_cog(ReelectionCommandsCog(discord_bot_instance, governance))
