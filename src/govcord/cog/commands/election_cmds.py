"""
Election commands.

Slash commands for the election lifecycle: opening an election, candidate
registration and withdrawal, voting, phase changes, and read-only views of
candidates, administrators and the current election.

Moderator-only commands: initiate_election, begin_voting_phase,
close_election, cancel_election, check_privileges.
"""

import discord
from discord.ext import commands

from govcord.datatypes.governance_datatypes import ElectionStatus, ElectionType, Visibility
from govcord.governance.access import AccessTier
from govcord.governance.election_naming import election_name, status_label
from govcord.util.format_utils import humanize_timestamp, whole_days_between
from govcord.cog.commands.governance_base import GovernanceCog
from govcord.util.logger import get_logger

logger = get_logger("election_commands")


class ElectionCommandsCog(GovernanceCog):
    """Election lifecycle commands."""

    def __init__(self, discord_bot_instance, governance):
        super().__init__(discord_bot_instance, governance)
        logger.info("[ELECTION CMDS] Election cog loaded")

    @commands.slash_command(name="initiate_election", description="Open an administrator election for this server.")
    async def initiate_election(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.initiate(guild_id, ElectionType.INITIAL, initiated_by=user_id)
            await ctx.respond(
                f"{election_name(election)} is open for candidates until "
                f"{humanize_timestamp(election.registration_ends_at)}.",
                ephemeral=True,
            )
            return election

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="register_candidacy", description="Run for your cohort's administrator seat.")
    async def register_candidacy(
        self,
        ctx: discord.ApplicationContext,
        manifesto: discord.Option(str, "What you would do as administrator", required=False, default=""),
    ):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            candidate = await self.governance.registry.register(election.id, user_id, manifesto or "")
            await ctx.respond(
                f"You are registered for cohort {candidate.cohort} with candidate code "
                f"**{candidate.candidate_code}**.",
                ephemeral=True,
            )
            return candidate

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="withdraw_candidacy", description="Withdraw from the current election.")
    async def withdraw_candidacy(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            candidate = await self.governance.registry.withdraw(election.id, user_id)
            await ctx.respond(f"Candidacy {candidate.candidate_code} withdrawn.", ephemeral=True)
            return candidate

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="list_candidates", description="Show the candidates in the current election.")
    async def list_candidates(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            grouped = await self.governance.registry.grouped_by_cohort(election.id)
            embed = discord.Embed(title=election_name(election), description=status_label(election.status))
            if not grouped:
                embed.add_field(name="Candidates", value="Nobody has registered yet.", inline=False)
            for cohort, candidates in grouped.items():
                lines = [
                    f"**{c.candidate_code}** <@{c.user_id}> "
                    f"(supervision {c.supervision_rating}, positivity {c.positivity_rating})"
                    + (f"\n> {c.manifesto}" if c.manifesto else "")
                    for c in candidates
                ]
                embed.add_field(name=f"Cohort {cohort}", value="\n".join(lines)[:1024], inline=False)
            await ctx.respond(embed=embed, ephemeral=True)
            return grouped

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="cast_vote", description="Vote for a candidate by code.")
    async def cast_vote(
        self,
        ctx: discord.ApplicationContext,
        code: discord.Option(str, "Candidate code, e.g. 701"),
        private: discord.Option(bool, "Hide your ballot from public tallies", required=False, default=False),
    ):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            visibility = Visibility.PRIVATE if private else Visibility.PUBLIC
            ballot = await self.governance.ledger.cast(election.id, user_id, code, visibility)
            await ctx.respond(f"Your {visibility} ballot for {ballot.candidate_code} was recorded.", ephemeral=True)
            return ballot

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="begin_voting_phase", description="Close registration and open voting.")
    async def begin_voting_phase(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            election = await self.governance.lifecycle.begin_voting(election.id)
            await ctx.respond(
                f"Voting is open until {humanize_timestamp(election.voting_ends_at)}.", ephemeral=True
            )
            return election

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="close_election", description="Count the ballots and seat the winners.")
    async def close_election(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            result = await self.governance.lifecycle.finalize(election.id)
            seated = [c for c in result.cohorts if c.seated]
            await ctx.respond(
                f"{election_name(election)} closed with {result.total_ballots} ballots; "
                f"{len(seated)} administrators seated.",
                ephemeral=True,
            )
            return result

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="cancel_election", description="Cancel the current election.")
    async def cancel_election(
        self,
        ctx: discord.ApplicationContext,
        reason: discord.Option(str, "Why the election is cancelled", required=False, default=""),
    ):
        async def action(guild_id: int, user_id: int):
            election = await self.governance.lifecycle.require_open(guild_id)
            election = await self.governance.lifecycle.cancel(election.id, reason or "")
            await ctx.respond(f"{election_name(election)} was cancelled.", ephemeral=True)
            return election

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="list_administrators", description="Show the elected administrators.")
    async def list_administrators(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            overview = await self.governance.lifecycle.status_overview(guild_id)
            now = self.governance.lifecycle.clock()
            if not overview.administrators:
                await ctx.respond("There are no elected administrators yet.", ephemeral=True)
                return overview.administrators
            lines = [
                f"Cohort {a.cohort}: <@{a.user_id}> since {humanize_timestamp(a.appointed_at)} "
                f"({whole_days_between(a.appointed_at, now)} days)"
                for a in overview.administrators
            ]
            embed = discord.Embed(
                title=f"Administrators ({len(overview.administrators)}/{overview.seat_ceiling})",
                description="\n".join(lines),
            )
            await ctx.respond(embed=embed, ephemeral=True)
            return overview.administrators

        return await self._invoke(ctx, AccessTier.MEMBER, action)

    @commands.slash_command(name="check_privileges", description="Compare elected seats with the administrator role.")
    async def check_privileges(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            drift = await self.governance.executor.reconcile(guild_id)
            if drift.in_sync:
                await ctx.respond("The administrator role matches the elected seats.", ephemeral=True)
                return drift
            embed = discord.Embed(title="Administrator role drift")
            if drift.missing:
                embed.add_field(
                    name="Seated but missing the role",
                    value=", ".join(f"<@{uid}>" for uid in sorted(drift.missing)),
                    inline=False,
                )
            if drift.unexpected:
                embed.add_field(
                    name="Holding the role without a seat",
                    value=", ".join(f"<@{uid}>" for uid in sorted(drift.unexpected)),
                    inline=False,
                )
            await ctx.respond(embed=embed, ephemeral=True)
            return drift

        return await self._invoke(ctx, AccessTier.MODERATOR, action)

    @commands.slash_command(name="election_status", description="Show seats and the current election.")
    async def election_status(self, ctx: discord.ApplicationContext):
        async def action(guild_id: int, user_id: int):
            overview = await self.governance.lifecycle.status_overview(guild_id)
            embed = discord.Embed(title="Election status")
            seats = ", ".join(f"{cohort}: {count}" for cohort, count in overview.seats_by_cohort.items()) or "none"
            embed.add_field(
                name="Seats",
                value=f"{len(overview.administrators)}/{overview.seat_ceiling} filled (cohorts {seats})",
                inline=False,
            )

            election = overview.election
            if election is None:
                embed.add_field(name="Election", value="No election has been held yet.", inline=False)
            else:
                lines = [f"{election_name(election)}: {status_label(election.status)}"]
                if not election.status.is_terminal:
                    lines.append(f"Registration closes {humanize_timestamp(election.registration_ends_at)}")
                    lines.append(f"Voting closes {humanize_timestamp(election.voting_ends_at)}")
                else:
                    lines.append(f"Ended {humanize_timestamp(election.ended_at)}")
                embed.add_field(name="Election", value="\n".join(lines), inline=False)

                candidates = ", ".join(
                    f"{cohort}: {count}" for cohort, count in overview.candidates_by_cohort.items()
                ) or "none"
                embed.add_field(name="Candidates by cohort", value=candidates, inline=False)
                if election.status in (ElectionStatus.VOTING, ElectionStatus.COMPLETED):
                    ballots = overview.ballots_by_visibility
                    embed.add_field(
                        name="Ballots",
                        value=f"{ballots.get(Visibility.PUBLIC, 0)} public, {ballots.get(Visibility.PRIVATE, 0)} private",
                        inline=False,
                    )
            await ctx.respond(embed=embed, ephemeral=True)
            return overview

        return await self._invoke(ctx, AccessTier.MEMBER, action)


def setup(discord_bot_instance, governance):
    discord_bot_instance.add_cog(ElectionCommandsCog(discord_bot_instance, governance))
