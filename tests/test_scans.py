import pytest

from govcord.datatypes.governance_datatypes import ElectionStatus, SessionStatus
from govcord.governance.scans import DEADLINES, ELECTION_TRIGGER, PRIVILEGE_SYNC, REELECTION_TRIGGER

GUILD = 1000
OTHER_GUILD = 2000


@pytest.mark.asyncio
async def test_election_trigger_scan_opens_one_election(governance):
    scans = governance.scans

    assert await scans.election_trigger_scan(GUILD) is True
    assert await scans.election_trigger_scan(GUILD) is False


@pytest.mark.asyncio
async def test_failure_in_one_guild_does_not_block_others(governance, monkeypatch):
    original = governance.lifecycle.maybe_trigger

    async def flaky(guild_id):
        if guild_id == GUILD:
            raise RuntimeError("database hiccup")
        return await original(guild_id)

    monkeypatch.setattr(governance.lifecycle, "maybe_trigger", flaky)

    opened = [await governance.scans.election_trigger_scan(guild_id) for guild_id in (GUILD, OTHER_GUILD)]

    assert opened == [False, True]
    assert await governance.lifecycle.get_open(GUILD) is None
    assert await governance.lifecycle.get_open(OTHER_GUILD) is not None


@pytest.mark.asyncio
async def test_reelection_trigger_scan_counts_sessions(governance, clock):
    await governance.executor.appoint(GUILD, 500, "7")
    await governance.executor.appoint(GUILD, 501, "8")
    clock.advance(days=8)

    assert await governance.scans.reelection_trigger_scan(GUILD) == 2
    assert await governance.scans.reelection_trigger_scan(GUILD) == 0


@pytest.mark.asyncio
async def test_deadline_scan_advances_elections_and_proceedings(governance, clock, seed_profile, seed_voters):
    election = await governance.lifecycle.initiate(GUILD)
    await seed_profile(1)
    await governance.registry.register(election.id, 1)
    await governance.executor.appoint(GUILD, 500, "8")
    session = await governance.reelection.create_session(GUILD, 500)

    clock.now = election.registration_ends_at
    await governance.scans.deadline_scan(GUILD)
    assert (await governance.lifecycle.get(election.id)).status is ElectionStatus.VOTING

    clock.now = election.voting_ends_at
    await governance.scans.deadline_scan(GUILD)
    assert (await governance.lifecycle.get(election.id)).status is ElectionStatus.COMPLETED
    assert (await governance.reelection.get(session.id)).status is SessionStatus.CANCELLED


@pytest.mark.asyncio
async def test_callbacks_cover_every_label(governance):
    assert set(governance.scans.callbacks) == {ELECTION_TRIGGER, REELECTION_TRIGGER, DEADLINES}
    assert PRIVILEGE_SYNC not in governance.scans.callbacks


@pytest.mark.asyncio
async def test_privilege_sync_scan_reports_drift(governance, gateway):
    await governance.executor.appoint(GUILD, 500, "7")
    assert (await governance.scans.privilege_sync_scan(GUILD)).in_sync

    gateway.admins[GUILD].discard(500)
    drift = await governance.scans.privilege_sync_scan(GUILD)

    assert drift.missing == {500}
    assert drift.unexpected == set()


@pytest.mark.asyncio
async def test_privilege_sync_scan_survives_gateway_failure(governance, monkeypatch):
    async def unavailable(guild_id):
        raise RuntimeError("role list unavailable")

    monkeypatch.setattr(governance.executor.gateway, "list_admins", unavailable)

    assert await governance.scans.privilege_sync_scan(GUILD) is None
