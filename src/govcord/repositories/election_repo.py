"""
Persistent storage for elections.

The partial unique index ``ux_elections_one_open`` rejects a second
non-terminal election in the same guild, so ``insert`` raises
``aiosqlite.IntegrityError`` instead of silently creating a duplicate.
Status changes are conditional updates: they only apply when the row is
still in one of the expected phases.
"""

from __future__ import annotations

import json
from typing import Dict, Iterable, List, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import (
    OPEN_ELECTION_STATUSES,
    Election,
    ElectionStatus,
    ElectionType,
)

_COLUMNS = (
    "id, guild_id, election_type, status, initiated_by, started_at, "
    "registration_ends_at, voting_ends_at, ended_at, results"
)

_OPEN = tuple(str(s) for s in OPEN_ELECTION_STATUSES)


def _row_to_election(row: aiosqlite.Row) -> Election:
    results = json.loads(row["results"]) if row["results"] else None
    return Election(
        id=row["id"],
        guild_id=row["guild_id"],
        election_type=ElectionType(row["election_type"]),
        status=ElectionStatus(row["status"]),
        initiated_by=row["initiated_by"],
        started_at=row["started_at"],
        registration_ends_at=row["registration_ends_at"],
        voting_ends_at=row["voting_ends_at"],
        ended_at=row["ended_at"],
        results=results,
    )


class ElectionRepository:
    """Low-level CRUD for the ``elections`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        guild_id: int,
        election_type: ElectionType,
        status: ElectionStatus,
        started_at: int,
        registration_ends_at: int,
        voting_ends_at: int,
        initiated_by: Optional[int] = None,
    ) -> Election:
        """Create an election row and return it."""
        cursor = await conn.execute(
            """
            INSERT INTO elections (
                guild_id, election_type, status, initiated_by,
                started_at, registration_ends_at, voting_ends_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                guild_id, str(election_type), str(status), initiated_by,
                started_at, registration_ends_at, voting_ends_at,
            ),
        )
        return Election(
            id=cursor.lastrowid,
            guild_id=guild_id,
            election_type=election_type,
            status=status,
            initiated_by=initiated_by,
            started_at=started_at,
            registration_ends_at=registration_ends_at,
            voting_ends_at=voting_ends_at,
        )

    @staticmethod
    async def transition(
        conn: aiosqlite.Connection,
        election_id: int,
        new_status: ElectionStatus,
        expected: Iterable[ElectionStatus],
        ended_at: Optional[int] = None,
        results: Optional[Dict] = None,
    ) -> bool:
        """Move an election to ``new_status`` if it is currently in one of ``expected``.

        Returns:
            True if the row was updated, False if it was missing or in another phase.
        """
        expected_values = [str(s) for s in expected]
        placeholders = ", ".join("?" for _ in expected_values)
        cursor = await conn.execute(
            f"""
            UPDATE elections
            SET status = ?,
                ended_at = COALESCE(?, ended_at),
                results = COALESCE(?, results)
            WHERE id = ? AND status IN ({placeholders})
            """,
            (
                str(new_status),
                ended_at,
                json.dumps(results) if results is not None else None,
                election_id,
                *expected_values,
            ),
        )
        return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, election_id: int) -> Optional[Election]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM elections WHERE id = ?",
            (election_id,),
        )
        row = await cursor.fetchone()
        return _row_to_election(row) if row else None

    @staticmethod
    async def get_open(conn: aiosqlite.Connection, guild_id: int) -> Optional[Election]:
        """Return the guild's non-terminal election, if any."""
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM elections "
            f"WHERE guild_id = ? AND status IN (?, ?, ?) LIMIT 1",
            (guild_id, *_OPEN),
        )
        row = await cursor.fetchone()
        return _row_to_election(row) if row else None

    @staticmethod
    async def list_recent(
        conn: aiosqlite.Connection,
        guild_id: int,
        limit: int = 5,
    ) -> List[Election]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM elections WHERE guild_id = ? "
            f"ORDER BY started_at DESC, id DESC LIMIT ?",
            (guild_id, limit),
        )
        rows = await cursor.fetchall()
        return [_row_to_election(row) for row in rows]

    @staticmethod
    async def store_results(conn: aiosqlite.Connection, election_id: int, results: Dict) -> None:
        """Attach the result snapshot to a completed election."""
        await conn.execute(
            "UPDATE elections SET results = ? WHERE id = ? AND status = 'completed'",
            (json.dumps(results), election_id),
        )
