"""
Database schema initialization.

Creates the governance tables, their uniqueness indexes, the guard triggers
that keep closed elections and proceedings immutable, and schema version
tracking. All timestamps are INTEGER unix seconds (UTC).
"""

import aiosqlite
from govcord.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1

# Raise messages used by the guard triggers. Repositories match on these to
# turn an IntegrityError into a specific rejection.
REGISTRATION_CLOSED = "election is not accepting candidates"
VOTING_CLOSED = "election is not accepting ballots"
VOTER_IS_CANDIDATE = "voter is a candidate in this election"
PROCEEDING_CLOSED = "proceeding is not ongoing"


class SchemaManager:
    """Manages database schema creation.

    Every statement is idempotent so ``initialize_schema`` runs on each
    startup."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables, indexes, and triggers.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS elections (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                election_type TEXT NOT NULL CHECK (election_type IN ('initial', 'reelection')),
                status TEXT NOT NULL CHECK (status IN (
                    'preparation', 'candidate_registration', 'voting', 'completed', 'cancelled'
                )),
                initiated_by INTEGER,
                started_at INTEGER NOT NULL,
                registration_ends_at INTEGER NOT NULL,
                voting_ends_at INTEGER NOT NULL,
                ended_at INTEGER,
                results TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS candidates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                election_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                display_name TEXT NOT NULL DEFAULT '',
                cohort TEXT NOT NULL,
                sequence INTEGER NOT NULL,
                candidate_code TEXT NOT NULL,
                supervision_rating INTEGER NOT NULL DEFAULT 0,
                positivity_rating INTEGER NOT NULL DEFAULT 0,
                manifesto TEXT NOT NULL DEFAULT '',
                applied_at INTEGER NOT NULL,
                is_approved INTEGER NOT NULL DEFAULT 1,
                UNIQUE (election_id, user_id),
                UNIQUE (election_id, candidate_code),
                UNIQUE (election_id, cohort, sequence),
                FOREIGN KEY (election_id) REFERENCES elections(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS election_ballots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                election_id INTEGER NOT NULL,
                voter_id INTEGER NOT NULL,
                candidate_code TEXT NOT NULL,
                visibility TEXT NOT NULL DEFAULT 'public' CHECK (visibility IN ('public', 'private')),
                cast_at INTEGER NOT NULL,
                UNIQUE (election_id, voter_id),
                FOREIGN KEY (election_id) REFERENCES elections(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS administrators (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                cohort TEXT NOT NULL,
                election_id INTEGER,
                appointed_at INTEGER NOT NULL,
                term_ends_at INTEGER,
                is_active INTEGER NOT NULL DEFAULT 1
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS reelection_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                admin_user_id INTEGER NOT NULL,
                initiator_id INTEGER,
                auto_triggered INTEGER NOT NULL DEFAULT 0,
                trigger_reason TEXT NOT NULL DEFAULT '',
                started_at INTEGER NOT NULL,
                ended_at INTEGER,
                status TEXT NOT NULL DEFAULT 'ongoing' CHECK (status IN ('ongoing', 'completed', 'cancelled')),
                outcome TEXT,
                required_votes INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS impeachment_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                admin_user_id INTEGER NOT NULL,
                initiator_id INTEGER NOT NULL,
                reason TEXT NOT NULL DEFAULT '',
                initiated_at INTEGER NOT NULL,
                ended_at INTEGER,
                status TEXT NOT NULL DEFAULT 'ongoing' CHECK (status IN ('ongoing', 'success', 'failed', 'cancelled')),
                required_votes INTEGER NOT NULL,
                support_votes INTEGER NOT NULL DEFAULT 0,
                oppose_votes INTEGER NOT NULL DEFAULT 0,
                total_votes INTEGER NOT NULL DEFAULT 0
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS proceeding_ballots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                proceeding_kind TEXT NOT NULL CHECK (proceeding_kind IN ('reelection', 'impeachment')),
                proceeding_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                voter_id INTEGER NOT NULL,
                is_support INTEGER NOT NULL,
                cast_at INTEGER NOT NULL,
                UNIQUE (proceeding_kind, proceeding_id, voter_id)
            )
        """)

        # Read-only from the governance core; maintained by the profile feature.
        await db.execute("""
            CREATE TABLE IF NOT EXISTS member_profiles (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                display_name TEXT NOT NULL DEFAULT '',
                cohort_label TEXT NOT NULL DEFAULT '',
                supervision_rating INTEGER NOT NULL DEFAULT 0,
                positivity_rating INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (guild_id, user_id)
            )
        """)

        # Ballots keyed by (admin, guild) from before sessions existed.
        # Only read by the one-time migration and purged on removal.
        await db.execute("""
            CREATE TABLE IF NOT EXISTS legacy_reelection_votes (
                guild_id INTEGER NOT NULL,
                admin_user_id INTEGER NOT NULL,
                voter_id INTEGER NOT NULL,
                is_support INTEGER NOT NULL,
                voted_at INTEGER NOT NULL,
                PRIMARY KEY (guild_id, admin_user_id, voter_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create uniqueness constraints and lookup indexes."""
        # At most one non-terminal election per guild
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_elections_one_open
            ON elections(guild_id)
            WHERE status IN ('preparation', 'candidate_registration', 'voting')
        """)
        # One active seat per (guild, cohort) and per (guild, user)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_administrators_active_seat
            ON administrators(guild_id, cohort) WHERE is_active = 1
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_administrators_active_user
            ON administrators(guild_id, user_id) WHERE is_active = 1
        """)
        # One ongoing proceeding per (guild, admin) of each kind
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_reelection_one_ongoing
            ON reelection_sessions(guild_id, admin_user_id) WHERE status = 'ongoing'
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS ux_impeachment_one_ongoing
            ON impeachment_records(guild_id, admin_user_id) WHERE status = 'ongoing'
        """)

        await db.execute("CREATE INDEX IF NOT EXISTS idx_elections_guild ON elections(guild_id, started_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_candidates_cohort ON candidates(election_id, cohort)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_election_ballots_code ON election_ballots(election_id, candidate_code)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_administrators_guild ON administrators(guild_id, is_active)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_reelection_admin ON reelection_sessions(guild_id, admin_user_id, started_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_impeachment_admin ON impeachment_records(guild_id, admin_user_id, ended_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_impeachment_initiator ON impeachment_records(guild_id, initiator_id, initiated_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_proceeding_ballots_lookup ON proceeding_ballots(proceeding_kind, proceeding_id)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        """Create guard triggers that reject writes against closed records."""
        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS guard_candidate_registration
            BEFORE INSERT ON candidates
            FOR EACH ROW
            WHEN (SELECT status FROM elections WHERE id = NEW.election_id) IS NOT 'candidate_registration'
            BEGIN
                SELECT RAISE(ABORT, '{REGISTRATION_CLOSED}');
            END
        """)

        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS guard_election_ballot_phase
            BEFORE INSERT ON election_ballots
            FOR EACH ROW
            WHEN (SELECT status FROM elections WHERE id = NEW.election_id) IS NOT 'voting'
            BEGIN
                SELECT RAISE(ABORT, '{VOTING_CLOSED}');
            END
        """)

        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS guard_election_ballot_voter
            BEFORE INSERT ON election_ballots
            FOR EACH ROW
            WHEN EXISTS (
                SELECT 1 FROM candidates
                WHERE election_id = NEW.election_id AND user_id = NEW.voter_id
            )
            BEGIN
                SELECT RAISE(ABORT, '{VOTER_IS_CANDIDATE}');
            END
        """)

        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS guard_reelection_ballot
            BEFORE INSERT ON proceeding_ballots
            FOR EACH ROW
            WHEN NEW.proceeding_kind = 'reelection' AND NOT EXISTS (
                SELECT 1 FROM reelection_sessions
                WHERE id = NEW.proceeding_id AND status = 'ongoing'
            )
            BEGIN
                SELECT RAISE(ABORT, '{PROCEEDING_CLOSED}');
            END
        """)

        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS guard_impeachment_ballot
            BEFORE INSERT ON proceeding_ballots
            FOR EACH ROW
            WHEN NEW.proceeding_kind = 'impeachment' AND NOT EXISTS (
                SELECT 1 FROM impeachment_records
                WHERE id = NEW.proceeding_id AND status = 'ongoing'
            )
            BEGIN
                SELECT RAISE(ABORT, '{PROCEEDING_CLOSED}');
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Update schema version tracking."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
