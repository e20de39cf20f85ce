"""
Persistent storage for reelection and impeachment ballots.

Both proceeding kinds share one session-scoped table keyed by
``(proceeding_kind, proceeding_id, voter_id)``. Guard triggers refuse a
ballot whose proceeding is no longer ongoing. The legacy (admin, guild)
keyed table is only read by the migration and purged on removal.
"""

from __future__ import annotations

import aiosqlite

from govcord.datatypes.governance_datatypes import ProceedingKind, VoteCounts


class ProceedingBallotRepository:
    """Low-level CRUD for the ``proceeding_ballots`` table."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        kind: ProceedingKind,
        proceeding_id: int,
        guild_id: int,
        voter_id: int,
        is_support: bool,
        cast_at: int,
    ) -> None:
        await conn.execute(
            """
            INSERT INTO proceeding_ballots (proceeding_kind, proceeding_id, guild_id, voter_id, is_support, cast_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (str(kind), proceeding_id, guild_id, voter_id, int(is_support), cast_at),
        )

    @staticmethod
    async def counts(conn: aiosqlite.Connection, kind: ProceedingKind, proceeding_id: int) -> VoteCounts:
        cursor = await conn.execute(
            """
            SELECT
                COALESCE(SUM(CASE WHEN is_support = 1 THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN is_support = 0 THEN 1 ELSE 0 END), 0)
            FROM proceeding_ballots
            WHERE proceeding_kind = ? AND proceeding_id = ?
            """,
            (str(kind), proceeding_id),
        )
        row = await cursor.fetchone()
        return VoteCounts(support=int(row[0]), oppose=int(row[1]))

    @staticmethod
    async def has_voted(
        conn: aiosqlite.Connection,
        kind: ProceedingKind,
        proceeding_id: int,
        voter_id: int,
    ) -> bool:
        cursor = await conn.execute(
            "SELECT 1 FROM proceeding_ballots "
            "WHERE proceeding_kind = ? AND proceeding_id = ? AND voter_id = ? LIMIT 1",
            (str(kind), proceeding_id, voter_id),
        )
        return await cursor.fetchone() is not None

    @staticmethod
    async def delete_for_proceeding(conn: aiosqlite.Connection, kind: ProceedingKind, proceeding_id: int) -> int:
        cursor = await conn.execute(
            "DELETE FROM proceeding_ballots WHERE proceeding_kind = ? AND proceeding_id = ?",
            (str(kind), proceeding_id),
        )
        return cursor.rowcount

    @staticmethod
    async def delete_legacy_for_admin(conn: aiosqlite.Connection, guild_id: int, admin_user_id: int) -> int:
        cursor = await conn.execute(
            "DELETE FROM legacy_reelection_votes WHERE guild_id = ? AND admin_user_id = ?",
            (guild_id, admin_user_id),
        )
        return cursor.rowcount
