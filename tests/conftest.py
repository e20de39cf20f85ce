"""
Pytest configuration and fixtures for Govcord tests.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.database.db_connection import ConnectionManager
from govcord.database.db_schema import SchemaManager
from govcord.governance.collaborators import SqliteProfileStore
from govcord.governance.service import GovernanceService
from govcord.util.format_utils import SECONDS_PER_DAY, SECONDS_PER_HOUR

GUILD = 1000
OTHER_GUILD = 2000
START = 1_760_000_000


class FakeClock:
    """Manually advanced clock returning unix seconds."""

    def __init__(self, now: int = START):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 0, hours: float = 0, days: float = 0) -> int:
        self.now += int(seconds + hours * SECONDS_PER_HOUR + days * SECONDS_PER_DAY)
        return self.now


class FakeGateway:
    """Records grants and revokes instead of touching Discord roles."""

    def __init__(self, membership: int = 50):
        self.membership = membership
        self.granted = []
        self.revoked = []
        self.admins = {}
        self.fail = False
        self.fail_membership = False

    async def grant(self, guild_id, user_id):
        if self.fail:
            raise RuntimeError("discord unavailable")
        self.granted.append((guild_id, user_id))
        self.admins.setdefault(guild_id, set()).add(user_id)
        return True

    async def revoke(self, guild_id, user_id):
        if self.fail:
            raise RuntimeError("discord unavailable")
        self.revoked.append((guild_id, user_id))
        self.admins.setdefault(guild_id, set()).discard(user_id)
        return True

    async def list_admins(self, guild_id):
        return sorted(self.admins.get(guild_id, set()))

    async def membership_count(self, guild_id):
        if self.fail_membership:
            raise RuntimeError("member list unavailable")
        return self.membership


class FakeNotifier:
    def __init__(self):
        self.messages = []
        self.fail = False

    async def send(self, guild_id, text):
        if self.fail:
            raise RuntimeError("channel unavailable")
        self.messages.append((guild_id, text))
        return True

    def texts(self, guild_id=GUILD):
        return [text for gid, text in self.messages if gid == guild_id]


@pytest_asyncio.fixture
async def db(tmp_path):
    """Open a fresh database with the governance schema."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "governance.db")
    await SchemaManager.initialize_schema(manager.connection)
    yield manager
    await manager.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def settings():
    return GovernanceSettings({})


@pytest.fixture
def governance(db, settings, gateway, notifier, clock):
    return GovernanceService.build(
        db=db,
        settings=settings,
        profiles=SqliteProfileStore(db),
        gateway=gateway,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def seed_profile(db):
    """Insert or replace a member profile; eligible for candidacy by default."""

    async def _seed(user_id, cohort="7", supervision=95, positivity=50, guild_id=GUILD, display_name=""):
        async with db.transaction() as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO member_profiles
                    (guild_id, user_id, display_name, cohort_label, supervision_rating, positivity_rating)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (guild_id, user_id, display_name or f"member-{user_id}", cohort, supervision, positivity),
            )

    return _seed


@pytest.fixture
def seed_voters(seed_profile):
    """Give profiles to a range of voters."""

    async def _seed(user_ids, guild_id=GUILD):
        for user_id in user_ids:
            await seed_profile(user_id, cohort="1", supervision=0, positivity=0, guild_id=guild_id)

    return _seed
