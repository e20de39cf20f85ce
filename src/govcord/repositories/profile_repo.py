"""
Read-only access to member profiles.

Profiles are owned by the profile feature; governance only reads the
cohort label and the two eligibility ratings.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import MemberProfile


class ProfileRepository:
    """Reads from the ``member_profiles`` table."""

    @staticmethod
    async def get(conn: aiosqlite.Connection, guild_id: int, user_id: int) -> Optional[MemberProfile]:
        cursor = await conn.execute(
            "SELECT guild_id, user_id, display_name, cohort_label, supervision_rating, positivity_rating "
            "FROM member_profiles WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return MemberProfile(
            guild_id=row["guild_id"],
            user_id=row["user_id"],
            display_name=row["display_name"],
            cohort_label=row["cohort_label"],
            supervision_rating=row["supervision_rating"],
            positivity_rating=row["positivity_rating"],
        )
