"""
Privilege tiers for governance commands.

``member < trusted < moderator < owner``, resolved from the invoking Discord
member: the guild owner is ``owner``; Manage Server or Administrator
permission is ``moderator``; holding a configured trusted role is
``trusted``; everyone else is ``member``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable

import discord

from govcord.governance.errors import ValidationError


class AccessTier(IntEnum):
    MEMBER = 0
    TRUSTED = 1
    MODERATOR = 2
    OWNER = 3

    def __str__(self) -> str:
        return self.name.lower()


class AccessDeniedError(ValidationError):
    """The invoker's tier is below what the command requires."""


def resolve_tier(member: discord.Member, trusted_role_names: Iterable[str]) -> AccessTier:
    guild = getattr(member, "guild", None)
    if guild is not None and guild.owner_id == member.id:
        return AccessTier.OWNER

    permissions = getattr(member, "guild_permissions", None)
    if permissions is not None and (permissions.administrator or permissions.manage_guild):
        return AccessTier.MODERATOR

    trusted = set(trusted_role_names)
    if any(role.name in trusted for role in getattr(member, "roles", [])):
        return AccessTier.TRUSTED

    return AccessTier.MEMBER


def require_tier(member: discord.Member, required: AccessTier, trusted_role_names: Iterable[str]) -> AccessTier:
    """Return the member's tier or raise ``AccessDeniedError`` if it is below ``required``."""
    tier = resolve_tier(member, trusted_role_names)
    if tier < required:
        raise AccessDeniedError(f"This command requires the {required} tier; you are {tier}.")
    return tier
