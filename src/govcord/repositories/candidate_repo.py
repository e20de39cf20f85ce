"""
Persistent storage for election candidates.

Codes are assigned once at registration and never renumbered. The table's
unique constraints on ``(election_id, user_id)``, ``(election_id,
candidate_code)`` and ``(election_id, cohort, sequence)`` reject duplicate
and racing registrations.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import Candidate
from govcord.governance.cohort import candidate_code, cohort_sort_key

_COLUMNS = (
    "id, election_id, user_id, display_name, cohort, sequence, candidate_code, "
    "supervision_rating, positivity_rating, manifesto, applied_at, is_approved"
)


def _row_to_candidate(row: aiosqlite.Row) -> Candidate:
    return Candidate(
        id=row["id"],
        election_id=row["election_id"],
        user_id=row["user_id"],
        display_name=row["display_name"],
        cohort=row["cohort"],
        sequence=row["sequence"],
        candidate_code=row["candidate_code"],
        supervision_rating=row["supervision_rating"],
        positivity_rating=row["positivity_rating"],
        manifesto=row["manifesto"],
        applied_at=row["applied_at"],
        is_approved=bool(row["is_approved"]),
    )


class CandidateRepository:
    """Low-level CRUD for the ``candidates`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        election_id: int,
        user_id: int,
        cohort: str,
        sequence: int,
        applied_at: int,
        display_name: str = "",
        supervision_rating: int = 0,
        positivity_rating: int = 0,
        manifesto: str = "",
    ) -> Candidate:
        """Insert a candidate with a pre-computed sequence and return it."""
        code = candidate_code(cohort, sequence)
        cursor = await conn.execute(
            """
            INSERT INTO candidates (
                election_id, user_id, display_name, cohort, sequence, candidate_code,
                supervision_rating, positivity_rating, manifesto, applied_at, is_approved
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
            """,
            (
                election_id, user_id, display_name, cohort, sequence, code,
                supervision_rating, positivity_rating, manifesto, applied_at,
            ),
        )
        return Candidate(
            id=cursor.lastrowid,
            election_id=election_id,
            user_id=user_id,
            display_name=display_name,
            cohort=cohort,
            sequence=sequence,
            candidate_code=code,
            supervision_rating=supervision_rating,
            positivity_rating=positivity_rating,
            manifesto=manifesto,
            applied_at=applied_at,
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, election_id: int, user_id: int) -> bool:
        """Remove a candidate row. Sibling codes are left untouched."""
        cursor = await conn.execute(
            "DELETE FROM candidates WHERE election_id = ? AND user_id = ?",
            (election_id, user_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def next_sequence(conn: aiosqlite.Connection, election_id: int, cohort: str) -> int:
        """One more than the highest sequence ever assigned and still present in the cohort."""
        cursor = await conn.execute(
            "SELECT COALESCE(MAX(sequence), 0) FROM candidates WHERE election_id = ? AND cohort = ?",
            (election_id, cohort),
        )
        row = await cursor.fetchone()
        return int(row[0]) + 1

    @staticmethod
    async def get_by_user(
        conn: aiosqlite.Connection,
        election_id: int,
        user_id: int,
    ) -> Optional[Candidate]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM candidates WHERE election_id = ? AND user_id = ?",
            (election_id, user_id),
        )
        row = await cursor.fetchone()
        return _row_to_candidate(row) if row else None

    @staticmethod
    async def get_by_code(
        conn: aiosqlite.Connection,
        election_id: int,
        code: str,
    ) -> Optional[Candidate]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM candidates WHERE election_id = ? AND candidate_code = ?",
            (election_id, code),
        )
        row = await cursor.fetchone()
        return _row_to_candidate(row) if row else None

    @staticmethod
    async def list_for_election(
        conn: aiosqlite.Connection,
        election_id: int,
        approved_only: bool = True,
    ) -> List[Candidate]:
        """Candidates in numeric cohort order, then by sequence."""
        query = f"SELECT {_COLUMNS} FROM candidates WHERE election_id = ?"
        if approved_only:
            query += " AND is_approved = 1"
        cursor = await conn.execute(query, (election_id,))
        rows = await cursor.fetchall()
        candidates = [_row_to_candidate(row) for row in rows]
        candidates.sort(key=lambda c: (cohort_sort_key(c.cohort), c.sequence))
        return candidates

    @staticmethod
    async def count_by_cohort(conn: aiosqlite.Connection, election_id: int) -> Dict[str, int]:
        cursor = await conn.execute(
            "SELECT cohort, COUNT(*) FROM candidates "
            "WHERE election_id = ? AND is_approved = 1 GROUP BY cohort",
            (election_id,),
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}
