"""
One-time migration of legacy reelection ballots.

Older deployments recorded reelection ballots keyed by (admin, guild) with
no session. This migration groups those rows into one ongoing session per
pair, starting at the earliest legacy vote, and copies the ballots into
``proceeding_ballots``. It does nothing once any reelection session exists,
so running it on every startup is safe.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Tuple

import aiosqlite

from govcord.database.db_connection import ConnectionManager
from govcord.datatypes.governance_datatypes import ProceedingKind
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.proceeding_ballot_repo import ProceedingBallotRepository
from govcord.repositories.reelection_repo import ReelectionSessionRepository
from govcord.util.logger import get_logger

logger = get_logger("database_migration")

LEGACY_TRIGGER_REASON = "migrated legacy ballots"


async def migrate_legacy_reelection_votes(db: ConnectionManager, required_votes: int) -> int:
    """Convert legacy ballots into session-scoped ballots.

    Args:
        db: Open connection manager.
        required_votes: Quorum given to each migrated session.

    Returns:
        Number of sessions created (0 when there was nothing to migrate).
    """
    async with db.transaction() as conn:
        if await ReelectionSessionRepository.count_all(conn) > 0:
            logger.debug("[MIGRATION] Reelection sessions already present; skipping legacy migration")
            return 0

        cursor = await conn.execute(
            "SELECT guild_id, admin_user_id, voter_id, is_support, voted_at "
            "FROM legacy_reelection_votes ORDER BY voted_at"
        )
        rows = await cursor.fetchall()
        if not rows:
            return 0

        grouped: Dict[Tuple[int, int], List[aiosqlite.Row]] = defaultdict(list)
        for row in rows:
            grouped[(row["guild_id"], row["admin_user_id"])].append(row)

        created = 0
        for (guild_id, admin_user_id), votes in grouped.items():
            if await AdministratorRepository.get_active(conn, guild_id, admin_user_id) is None:
                logger.info(
                    "[MIGRATION] Skipping %d legacy ballots for inactive admin %s in guild %s",
                    len(votes), admin_user_id, guild_id,
                )
                continue

            session = await ReelectionSessionRepository.insert(
                conn,
                guild_id=guild_id,
                admin_user_id=admin_user_id,
                started_at=min(v["voted_at"] for v in votes),
                required_votes=required_votes,
                auto_triggered=True,
                trigger_reason=LEGACY_TRIGGER_REASON,
            )
            for vote in votes:
                await ProceedingBallotRepository.insert(
                    conn,
                    ProceedingKind.REELECTION,
                    session.id,
                    guild_id,
                    vote["voter_id"],
                    bool(vote["is_support"]),
                    vote["voted_at"],
                )
            created += 1

    logger.info("[MIGRATION] Migrated legacy reelection ballots into %d sessions", created)
    return created
