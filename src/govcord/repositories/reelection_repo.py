"""
Persistent storage for reelection sessions.

``ux_reelection_one_ongoing`` allows a single ongoing session per (guild,
admin). Closing a session is conditional on it still being ongoing, which
makes every terminal transition happen at most once.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import ReelectionSession, SessionOutcome, SessionStatus

_COLUMNS = (
    "id, guild_id, admin_user_id, initiator_id, auto_triggered, trigger_reason, "
    "started_at, ended_at, status, outcome, required_votes"
)


def _row_to_session(row: aiosqlite.Row) -> ReelectionSession:
    return ReelectionSession(
        id=row["id"],
        guild_id=row["guild_id"],
        admin_user_id=row["admin_user_id"],
        initiator_id=row["initiator_id"],
        auto_triggered=bool(row["auto_triggered"]),
        trigger_reason=row["trigger_reason"],
        started_at=row["started_at"],
        ended_at=row["ended_at"],
        status=SessionStatus(row["status"]),
        outcome=SessionOutcome(row["outcome"]) if row["outcome"] else None,
        required_votes=row["required_votes"],
    )


class ReelectionSessionRepository:
    """Low-level CRUD for the ``reelection_sessions`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
        started_at: int,
        required_votes: int,
        initiator_id: Optional[int] = None,
        auto_triggered: bool = False,
        trigger_reason: str = "",
    ) -> ReelectionSession:
        cursor = await conn.execute(
            """
            INSERT INTO reelection_sessions (
                guild_id, admin_user_id, initiator_id, auto_triggered,
                trigger_reason, started_at, status, required_votes
            ) VALUES (?, ?, ?, ?, ?, ?, 'ongoing', ?)
            """,
            (
                guild_id, admin_user_id, initiator_id, int(auto_triggered),
                trigger_reason, started_at, required_votes,
            ),
        )
        return ReelectionSession(
            id=cursor.lastrowid,
            guild_id=guild_id,
            admin_user_id=admin_user_id,
            initiator_id=initiator_id,
            auto_triggered=auto_triggered,
            trigger_reason=trigger_reason,
            started_at=started_at,
            required_votes=required_votes,
        )

    @staticmethod
    async def close(
        conn: aiosqlite.Connection,
        session_id: int,
        status: SessionStatus,
        ended_at: int,
        outcome: Optional[SessionOutcome] = None,
    ) -> bool:
        """Close an ongoing session. Returns False if it was already terminal."""
        cursor = await conn.execute(
            "UPDATE reelection_sessions SET status = ?, ended_at = ?, outcome = ? "
            "WHERE id = ? AND status = 'ongoing'",
            (str(status), ended_at, str(outcome) if outcome else None, session_id),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, session_id: int) -> Optional[ReelectionSession]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM reelection_sessions WHERE id = ?",
            (session_id,),
        )
        row = await cursor.fetchone()
        return _row_to_session(row) if row else None

    @staticmethod
    async def get_ongoing(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
    ) -> Optional[ReelectionSession]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM reelection_sessions "
            f"WHERE guild_id = ? AND admin_user_id = ? AND status = 'ongoing'",
            (guild_id, admin_user_id),
        )
        row = await cursor.fetchone()
        return _row_to_session(row) if row else None

    @staticmethod
    async def list_ongoing(conn: aiosqlite.Connection, guild_id: int) -> List[ReelectionSession]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM reelection_sessions "
            f"WHERE guild_id = ? AND status = 'ongoing' ORDER BY started_at, id",
            (guild_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_session(row) for row in rows]

    @staticmethod
    async def latest_started_at(
        conn: aiosqlite.Connection,
        guild_id: int,
        admin_user_id: int,
    ) -> Optional[int]:
        """Start time of the admin's most recent session of any status."""
        cursor = await conn.execute(
            "SELECT MAX(started_at) FROM reelection_sessions WHERE guild_id = ? AND admin_user_id = ?",
            (guild_id, admin_user_id),
        )
        row = await cursor.fetchone()
        return row[0] if row and row[0] is not None else None

    @staticmethod
    async def count_all(conn: aiosqlite.Connection) -> int:
        cursor = await conn.execute("SELECT COUNT(*) FROM reelection_sessions")
        row = await cursor.fetchone()
        return int(row[0])
