"""
Persistent storage for election ballots.

``UNIQUE (election_id, voter_id)`` is the one-ballot-per-voter rule; guard
triggers reject ballots outside the voting phase and ballots from a voter
who is a candidate in the same election.
"""

from __future__ import annotations

from typing import Dict, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import ElectionBallot, Visibility


class ElectionBallotRepository:
    """Low-level CRUD for the ``election_ballots`` table."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        election_id: int,
        voter_id: int,
        candidate_code: str,
        visibility: Visibility,
        cast_at: int,
    ) -> ElectionBallot:
        await conn.execute(
            """
            INSERT INTO election_ballots (election_id, voter_id, candidate_code, visibility, cast_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (election_id, voter_id, candidate_code, str(visibility), cast_at),
        )
        return ElectionBallot(
            election_id=election_id,
            voter_id=voter_id,
            candidate_code=candidate_code,
            visibility=visibility,
            cast_at=cast_at,
        )

    @staticmethod
    async def get_for_voter(
        conn: aiosqlite.Connection,
        election_id: int,
        voter_id: int,
    ) -> Optional[ElectionBallot]:
        cursor = await conn.execute(
            "SELECT election_id, voter_id, candidate_code, visibility, cast_at "
            "FROM election_ballots WHERE election_id = ? AND voter_id = ?",
            (election_id, voter_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return ElectionBallot(
            election_id=row["election_id"],
            voter_id=row["voter_id"],
            candidate_code=row["candidate_code"],
            visibility=Visibility(row["visibility"]),
            cast_at=row["cast_at"],
        )

    @staticmethod
    async def count_by_code(conn: aiosqlite.Connection, election_id: int) -> Dict[str, int]:
        """Ballot count per candidate code, limited to approved candidates."""
        cursor = await conn.execute(
            """
            SELECT b.candidate_code, COUNT(*)
            FROM election_ballots b
            JOIN candidates c
              ON c.election_id = b.election_id AND c.candidate_code = b.candidate_code
            WHERE b.election_id = ? AND c.is_approved = 1
            GROUP BY b.candidate_code
            """,
            (election_id,),
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    async def count_by_visibility(conn: aiosqlite.Connection, election_id: int) -> Dict[Visibility, int]:
        cursor = await conn.execute(
            "SELECT visibility, COUNT(*) FROM election_ballots WHERE election_id = ? GROUP BY visibility",
            (election_id,),
        )
        rows = await cursor.fetchall()
        counts = {visibility: 0 for visibility in Visibility}
        for row in rows:
            counts[Visibility(row[0])] = row[1]
        return counts
