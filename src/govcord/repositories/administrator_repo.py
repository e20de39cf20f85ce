"""
Persistent storage for elected administrators.

Rows are never deleted: removal sets ``is_active = 0`` and stamps
``term_ends_at`` so the seat history stays queryable. Partial unique
indexes allow one active row per (guild, cohort) and per (guild, user).
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from govcord.datatypes.governance_datatypes import Administrator
from govcord.governance.cohort import cohort_sort_key

_COLUMNS = "id, guild_id, user_id, cohort, election_id, appointed_at, term_ends_at, is_active"


def _row_to_admin(row: aiosqlite.Row) -> Administrator:
    return Administrator(
        id=row["id"],
        guild_id=row["guild_id"],
        user_id=row["user_id"],
        cohort=row["cohort"],
        election_id=row["election_id"],
        appointed_at=row["appointed_at"],
        term_ends_at=row["term_ends_at"],
        is_active=bool(row["is_active"]),
    )


class AdministratorRepository:
    """Low-level CRUD for the ``administrators`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        guild_id: int,
        user_id: int,
        cohort: str,
        appointed_at: int,
        election_id: Optional[int] = None,
    ) -> Administrator:
        cursor = await conn.execute(
            """
            INSERT INTO administrators (guild_id, user_id, cohort, election_id, appointed_at, is_active)
            VALUES (?, ?, ?, ?, ?, 1)
            """,
            (guild_id, user_id, cohort, election_id, appointed_at),
        )
        return Administrator(
            id=cursor.lastrowid,
            guild_id=guild_id,
            user_id=user_id,
            cohort=cohort,
            election_id=election_id,
            appointed_at=appointed_at,
        )

    @staticmethod
    async def deactivate(
        conn: aiosqlite.Connection,
        guild_id: int,
        user_id: int,
        ended_at: int,
    ) -> bool:
        """Deactivate the user's active seat. Returns False if there was none."""
        cursor = await conn.execute(
            "UPDATE administrators SET is_active = 0, term_ends_at = ? "
            "WHERE guild_id = ? AND user_id = ? AND is_active = 1",
            (ended_at, guild_id, user_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get_active(
        conn: aiosqlite.Connection,
        guild_id: int,
        user_id: int,
    ) -> Optional[Administrator]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM administrators "
            f"WHERE guild_id = ? AND user_id = ? AND is_active = 1",
            (guild_id, user_id),
        )
        row = await cursor.fetchone()
        return _row_to_admin(row) if row else None

    @staticmethod
    async def get_active_for_cohort(
        conn: aiosqlite.Connection,
        guild_id: int,
        cohort: str,
    ) -> Optional[Administrator]:
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM administrators "
            f"WHERE guild_id = ? AND cohort = ? AND is_active = 1",
            (guild_id, cohort),
        )
        row = await cursor.fetchone()
        return _row_to_admin(row) if row else None

    @staticmethod
    async def list_active(conn: aiosqlite.Connection, guild_id: int) -> List[Administrator]:
        """Active administrators in numeric cohort order."""
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM administrators WHERE guild_id = ? AND is_active = 1",
            (guild_id,),
        )
        rows = await cursor.fetchall()
        admins = [_row_to_admin(row) for row in rows]
        admins.sort(key=lambda a: cohort_sort_key(a.cohort))
        return admins

    @staticmethod
    async def count_active(conn: aiosqlite.Connection, guild_id: int) -> int:
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM administrators WHERE guild_id = ? AND is_active = 1",
            (guild_id,),
        )
        row = await cursor.fetchone()
        return int(row[0])
