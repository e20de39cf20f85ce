"""
Collaborators consumed by the governance engines.

Each collaborator is a ``typing.Protocol`` so engines can be driven by fakes
in tests. The default implementations talk to py-cord (privilege role and
announcement channel) and to the ``member_profiles`` table.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

import discord

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.discord_datatypes import GuildID, UserID
from govcord.datatypes.governance_datatypes import MemberProfile
from govcord.repositories.profile_repo import ProfileRepository
from govcord.util.logger import get_logger

logger = get_logger("governance_collaborators")


@runtime_checkable
class ProfileStore(Protocol):
    async def get(self, user_id: int, guild_id: int) -> Optional[MemberProfile]: ...


@runtime_checkable
class PrivilegeGateway(Protocol):
    async def grant(self, guild_id: int, user_id: int) -> bool: ...

    async def revoke(self, guild_id: int, user_id: int) -> bool: ...

    async def list_admins(self, guild_id: int) -> List[int]: ...

    async def membership_count(self, guild_id: int) -> int: ...


@runtime_checkable
class NotificationSink(Protocol):
    async def send(self, guild_id: int, text: str) -> bool: ...


class SqliteProfileStore:
    """Profile store backed by the ``member_profiles`` table."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def get(self, user_id: int, guild_id: int) -> Optional[MemberProfile]:
        async with self._db.read() as conn:
            return await ProfileRepository.get(conn, guild_id, user_id)


class DiscordPrivilegeGateway:
    """Grants and revokes the configured administrator role.

    Every method resolves the guild through the bot cache. Discord API
    failures are logged and reported as ``False``; they never raise.
    """

    def __init__(self, bot: discord.Bot, settings: GovernanceSettings) -> None:
        self.bot = bot
        self.settings = settings

    def _role(self, guild: discord.Guild) -> Optional[discord.Role]:
        return discord.utils.get(guild.roles, name=self.settings.administrator_role_name)

    async def _member(self, guild: discord.Guild, user_id: int) -> Optional[discord.Member]:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            return None

    async def grant(self, guild_id: int, user_id: int) -> bool:
        return await self._set_role(guild_id, user_id, add=True)

    async def revoke(self, guild_id: int, user_id: int) -> bool:
        return await self._set_role(guild_id, user_id, add=False)

    async def _set_role(self, guild_id: int, user_id: int, add: bool) -> bool:
        verb = "grant" if add else "revoke"
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            logger.warning("[PRIVILEGE GATEWAY] Guild %s not found; cannot %s role", guild_id, verb)
            return False

        role = self._role(guild)
        if role is None:
            logger.warning(
                "[PRIVILEGE GATEWAY] Role %r missing in guild %s; cannot %s",
                self.settings.administrator_role_name, guild_id, verb,
            )
            return False

        try:
            member = await self._member(guild, user_id)
            if member is None:
                logger.warning("[PRIVILEGE GATEWAY] Member %s not found in guild %s", user_id, guild_id)
                return False
            if add:
                await member.add_roles(role, reason="Elected administrator")
            else:
                await member.remove_roles(role, reason="Administrator term ended")
        except discord.Forbidden:
            logger.error("[PRIVILEGE GATEWAY] Missing permission to %s role in guild %s", verb, guild_id)
            return False
        except discord.HTTPException as exc:
            logger.error("[PRIVILEGE GATEWAY] Failed to %s role for %s in guild %s: %s", verb, user_id, guild_id, exc)
            return False

        logger.debug("[PRIVILEGE GATEWAY] %s role for %s in guild %s", verb, user_id, guild_id)
        return True

    async def list_admins(self, guild_id: int) -> List[int]:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            return []
        role = self._role(guild)
        if role is None:
            return []
        return [UserID.from_user(member).to_int() for member in role.members]

    async def membership_count(self, guild_id: int) -> int:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            return 0
        return int(guild.member_count or 0)


class DiscordNotificationSink:
    """Posts governance announcements to the configured channel.

    Falls back to the guild's system channel when no channel with the
    configured name exists.
    """

    def __init__(self, bot: discord.Bot, settings: GovernanceSettings) -> None:
        self.bot = bot
        self.settings = settings

    async def send(self, guild_id: int, text: str) -> bool:
        guild = self.bot.get_guild(GuildID(guild_id).to_int())
        if guild is None:
            logger.warning("[NOTIFICATION] Guild %s not found; dropping announcement", guild_id)
            return False

        channel = discord.utils.get(guild.text_channels, name=self.settings.announcement_channel_name)
        if channel is None:
            channel = guild.system_channel
        if channel is None:
            logger.warning("[NOTIFICATION] No announcement channel in guild %s", guild_id)
            return False

        try:
            await channel.send(text)
        except discord.HTTPException as exc:
            logger.error("[NOTIFICATION] Failed to post in guild %s: %s", guild_id, exc)
            return False
        return True
