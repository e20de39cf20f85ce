"""
Type-safe wrappers for Discord identifiers.

Governance tables store snowflakes as INTEGER; these wrappers give the
command layer and the Discord collaborators one place to convert between
py-cord objects, strings typed by users, and the integers the engines use.
"""

from __future__ import annotations

from typing import Union
import discord


class _Snowflake:
    """Shared behaviour for snowflake wrappers.

    Values are validated as non-negative integers and kept as ``int``.
    Equality also accepts plain ``int`` and decimal ``str`` values.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        if isinstance(value, _Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = value
        elif isinstance(value, str):
            self._value = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if self._value < 0:
            raise ValueError(f"Snowflake must be non-negative, got {self._value}")

    def to_int(self) -> int:
        return self._value

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, bool):
            return NotImplemented
        if isinstance(other, int):
            return self._value == other
        if isinstance(other, str):
            return str(self._value) == other.strip()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(_Snowflake):
    """
    Wrapper for Discord user snowflake IDs.

    Example:
        >>> UserID("123456789012345678").to_int()
        123456789012345678
    """

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        """Create a UserID from a Discord Member or User object."""
        return cls(member.id)

    @property
    def mention(self) -> str:
        return f"<@{self._value}>"


class GuildID(_Snowflake):
    """Wrapper for Discord guild snowflake IDs."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        """Create a GuildID from a Discord Guild object."""
        return cls(guild.id)
