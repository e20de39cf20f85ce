import pytest

from govcord.configuration.governance_settings import GovernanceSettings
from govcord.datatypes.governance_datatypes import ImpeachmentStatus, ProceedingKind, SessionStatus
from govcord.governance.errors import ConflictError, SeatCeilingError
from govcord.governance.power_transfer import PowerTransferExecutor
from govcord.repositories.administrator_repo import AdministratorRepository
from govcord.repositories.proceeding_ballot_repo import ProceedingBallotRepository

GUILD = 1000


@pytest.mark.asyncio
async def test_appoint_grants_privilege_and_announces(governance, gateway, notifier):
    admin = await governance.executor.appoint(GUILD, 500, "7", election_id=None)

    assert admin.is_active and admin.cohort == "7"
    assert gateway.granted == [(GUILD, 500)]
    assert any("<@500>" in text for text in notifier.texts())


@pytest.mark.asyncio
async def test_appoint_is_idempotent(governance, gateway):
    first = await governance.executor.appoint(GUILD, 500, "7")
    second = await governance.executor.appoint(GUILD, 500, "7")

    assert first.id == second.id
    assert gateway.granted == [(GUILD, 500)]


@pytest.mark.asyncio
async def test_one_active_seat_per_cohort(governance):
    await governance.executor.appoint(GUILD, 500, "7")

    with pytest.raises(ConflictError):
        await governance.executor.appoint(GUILD, 501, "7")


@pytest.mark.asyncio
async def test_seat_ceiling(db, gateway, notifier, clock):
    executor = PowerTransferExecutor(db, gateway, notifier, GovernanceSettings({"max_administrators": 2}), clock)
    await executor.appoint(GUILD, 500, "7")
    await executor.appoint(GUILD, 501, "8")

    with pytest.raises(SeatCeilingError):
        await executor.appoint(GUILD, 502, "9")

    async with db.read() as conn:
        assert await AdministratorRepository.count_active(conn, GUILD) == 2


@pytest.mark.asyncio
async def test_gateway_failure_keeps_stored_seat(governance, gateway, db):
    gateway.fail = True

    admin = await governance.executor.appoint(GUILD, 500, "7")

    async with db.read() as conn:
        stored = await AdministratorRepository.get_active(conn, GUILD, 500)
    assert stored.id == admin.id


@pytest.mark.asyncio
async def test_notification_failure_is_not_raised(governance, notifier):
    notifier.fail = True

    admin = await governance.executor.appoint(GUILD, 500, "7")

    assert admin.is_active


@pytest.mark.asyncio
async def test_remove_closes_proceedings_and_purges_ballots(governance, gateway, clock, db, seed_voters):
    await governance.executor.appoint(GUILD, 500, "7")
    await seed_voters(range(100, 105))
    clock.advance(days=2)
    session = await governance.reelection.create_session(GUILD, 500)
    await governance.reelection.vote(session.id, 100, True)
    async with db.transaction() as conn:
        await conn.execute(
            "INSERT INTO legacy_reelection_votes (guild_id, admin_user_id, voter_id, is_support, voted_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (GUILD, 500, 101, 0, clock()),
        )

    assert await governance.executor.remove(GUILD, 500, reason="stepped down") is True
    assert await governance.executor.remove(GUILD, 500) is False

    assert gateway.revoked == [(GUILD, 500)]
    assert (await governance.reelection.get(session.id)).status is SessionStatus.CANCELLED
    async with db.read() as conn:
        counts = await ProceedingBallotRepository.counts(conn, ProceedingKind.REELECTION, session.id)
        cursor = await conn.execute("SELECT COUNT(*) FROM legacy_reelection_votes")
        legacy = (await cursor.fetchone())[0]
    assert counts.total == 0
    assert legacy == 0


@pytest.mark.asyncio
async def test_remove_cancels_ongoing_impeachment(governance, clock, seed_voters):
    await governance.executor.appoint(GUILD, 500, "7")
    await seed_voters([100])
    clock.advance(days=2)
    record = await governance.impeachment.initiate(GUILD, 500, 100)

    await governance.executor.remove(GUILD, 500)

    assert (await governance.impeachment.get(record.id)).status is ImpeachmentStatus.CANCELLED


@pytest.mark.asyncio
async def test_removed_member_can_be_appointed_again(governance, gateway):
    await governance.executor.appoint(GUILD, 500, "7")
    await governance.executor.remove(GUILD, 500)

    again = await governance.executor.appoint(GUILD, 500, "7")

    assert again.is_active
    assert gateway.granted == [(GUILD, 500), (GUILD, 500)]


@pytest.mark.asyncio
async def test_reconcile_reports_drift(governance, gateway):
    await governance.executor.appoint(GUILD, 500, "7")
    await governance.executor.appoint(GUILD, 501, "8")
    gateway.admins[GUILD].discard(501)
    gateway.admins[GUILD].add(777)

    drift = await governance.executor.reconcile(GUILD)

    assert drift.missing == {501}
    assert drift.unexpected == {777}
    assert not drift.in_sync
