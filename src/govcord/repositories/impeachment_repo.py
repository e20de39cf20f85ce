"""
Persistent storage for impeachment records.

Besides its status, each record carries a running support/oppose/total
snapshot that is refreshed after every ballot so tallies can be shown
without re-counting.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import ImpeachmentRecord, ImpeachmentStatus, VoteCounts

_COLUMNS = (
    "id, guild_id, admin_user_id, initiator_id, reason, initiated_at, ended_at, "
    "status, required_votes, support_votes, oppose_votes, total_votes"
)


def _row_to_record(row: aiosqlite.Row) -> ImpeachmentRecord:
    return ImpeachmentRecord(
        id=row["id"],
        guild_id=row["guild_id"],
        admin_user_id=row["admin_user_id"],
        initiator_id=row["initiator_id"],
        reason=row["reason"],
        initiated_at=row["initiated_at"],
        ended_at=row["ended_at"],
        status=ImpeachmentStatus(row["status"]),
        required_votes=row["required_votes"],
        support_votes=row["support_votes"],
        oppose_votes=row["oppose_votes"],
        total_votes=row["total_votes"],
    )


class ImpeachmentRepository:
    """Low-level CRUD for the ``impeachment_records`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
        initiator_id: int,
        initiated_at: int,
        required_votes: int,
        reason: str = "",
    ) -> ImpeachmentRecord:
        cursor = await conn.execute(
            """
            INSERT INTO impeachment_records (
                guild_id, admin_user_id, initiator_id, reason,
                initiated_at, status, required_votes
            ) VALUES (?, ?, ?, ?, ?, 'ongoing', ?)
            """,
            (guild_id, admin_user_id, initiator_id, reason, initiated_at, required_votes),
        )
        return ImpeachmentRecord(
            id=cursor.lastrowid,
            guild_id=guild_id,
            admin_user_id=admin_user_id,
            initiator_id=initiator_id,
            reason=reason,
            initiated_at=initiated_at,
            required_votes=required_votes,
        )

    @staticmethod
    async def update_snapshot(conn: aiosqlite.Connection, record_id: int, counts: VoteCounts) -> None:
        await conn.execute(
            "UPDATE impeachment_records SET support_votes = ?, oppose_votes = ?, total_votes = ? "
            "WHERE id = ?",
            (counts.support, counts.oppose, counts.total, record_id),
        )

    @staticmethod
    async def close(
        conn: aiosqlite.Connection,
        record_id: int,
        status: ImpeachmentStatus,
        ended_at: int,
    ) -> bool:
        """Close an ongoing record. Returns False if it was already terminal."""
        cursor = await conn.execute(
            "UPDATE impeachment_records SET status = ?, ended_at = ? "
            "WHERE id = ? AND status = 'ongoing'",
            (str(status), ended_at, record_id),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, record_id: int) -> Optional[ImpeachmentRecord]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM impeachment_records WHERE id = ?",
            (record_id,),
        )
        row = await cursor.fetchone()
        return _row_to_record(row) if row else None

    @staticmethod
    async def get_ongoing(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
    ) -> Optional[ImpeachmentRecord]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM impeachment_records "
            f"WHERE guild_id = ? AND admin_user_id = ? AND status = 'ongoing'",
            (guild_id, admin_user_id),
        )
        row = await cursor.fetchone()
        return _row_to_record(row) if row else None

    @staticmethod
    async def list_ongoing(conn: aiosqlite.Connection, guild_id: int) -> List[ImpeachmentRecord]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM impeachment_records "
            f"WHERE guild_id = ? AND status = 'ongoing' ORDER BY initiated_at, id",
            (guild_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    @staticmethod
    async def latest_failure_end(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
    ) -> Optional[int]:
        """End time of the most recent failed impeachment against the admin."""
        cursor = await conn.execute(
            "SELECT MAX(ended_at) FROM impeachment_records "
            "WHERE guild_id = ? AND admin_user_id = ? AND status = 'failed'",
            (guild_id, admin_user_id),
        )
        row = await cursor.fetchone()
        return row[0] if row and row[0] is not None else None

    @staticmethod
    async def count_initiated_since(
        conn: aiosqlite.Connection,
        guild_id: int,
        initiator_id: int,
        since: int,
    ) -> int:
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM impeachment_records "
            "WHERE guild_id = ? AND initiator_id = ? AND initiated_at > ?",
            (guild_id, initiator_id, since),
        )
        row = await cursor.fetchone()
        return int(row[0])
