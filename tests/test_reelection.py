import pytest

from govcord.datatypes.governance_datatypes import SessionOutcome, SessionStatus
from govcord.governance.errors import ConflictError, InvalidPhaseError, NotFoundError, ValidationError
from govcord.governance.reelection import AUTO_TRIGGER_REASON

GUILD = 1000
ADMIN = 500


@pytest.fixture
def seated_admin(governance, clock, seed_voters):
    """Seat ADMIN for cohort 7 and move the clock past the reelection tenure."""

    async def _seat(days=8):
        await governance.executor.appoint(GUILD, ADMIN, "7")
        await seed_voters(range(100, 110))
        clock.advance(days=days)

    return _seat


@pytest.mark.asyncio
async def test_majority_support_keeps_admin(governance, seated_admin, gateway):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN, initiator_id=100)
    engine = governance.reelection

    await engine.vote_for_admin(GUILD, ADMIN, 100, True)
    await engine.vote_for_admin(GUILD, ADMIN, 101, False)
    closed = await engine.vote_for_admin(GUILD, ADMIN, 102, True)

    assert closed.id == session.id
    assert closed.status is SessionStatus.COMPLETED
    assert closed.outcome is SessionOutcome.REELECTED
    assert gateway.revoked == []
    overview = await governance.lifecycle.status_overview(GUILD)
    assert [a.user_id for a in overview.administrators] == [ADMIN]


@pytest.mark.asyncio
async def test_majority_opposition_removes_admin_once(governance, seated_admin, gateway):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)
    engine = governance.reelection

    await engine.vote(session.id, 100, True)
    await engine.vote(session.id, 101, False)
    await engine.vote(session.id, 102, False)

    assert await engine.evaluate(session.id) is SessionOutcome.REMOVED
    assert await engine.evaluate(session.id) is None
    assert gateway.revoked == [(GUILD, ADMIN)]
    assert (await engine.get(session.id)).outcome is SessionOutcome.REMOVED
    assert (await governance.lifecycle.status_overview(GUILD)).administrators == []


@pytest.mark.asyncio
async def test_session_stays_open_below_quorum(governance, seated_admin):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)

    counts = await governance.reelection.vote(session.id, 100, False)

    assert (counts.support, counts.oppose, counts.total) == (0, 1, 1)
    assert await governance.reelection.evaluate(session.id) is None
    assert (await governance.reelection.get(session.id)).status is SessionStatus.ONGOING


@pytest.mark.asyncio
async def test_closed_session_rejects_ballots(governance, seated_admin):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)
    for voter in (100, 101, 102):
        await governance.reelection.vote(session.id, voter, True)
    await governance.reelection.evaluate(session.id)

    with pytest.raises(InvalidPhaseError):
        await governance.reelection.vote(session.id, 103, False)


@pytest.mark.asyncio
async def test_one_ballot_per_voter(governance, seated_admin):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)
    await governance.reelection.vote(session.id, 100, True)

    with pytest.raises(ConflictError):
        await governance.reelection.vote(session.id, 100, False)


@pytest.mark.asyncio
async def test_voter_needs_profile(governance, seated_admin):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)

    with pytest.raises(ValidationError):
        await governance.reelection.vote(session.id, 999, True)


@pytest.mark.asyncio
async def test_one_ongoing_session_per_admin(governance, seated_admin):
    await seated_admin()
    await governance.reelection.create_session(GUILD, ADMIN)

    with pytest.raises(ConflictError):
        await governance.reelection.create_session(GUILD, ADMIN)


@pytest.mark.asyncio
async def test_session_requires_active_admin(governance):
    with pytest.raises(NotFoundError):
        await governance.reelection.create_session(GUILD, 12345)
    with pytest.raises(NotFoundError):
        await governance.reelection.vote_for_admin(GUILD, 12345, 100, True)


@pytest.mark.asyncio
async def test_trigger_twice_opens_one_session(governance, seated_admin):
    await seated_admin()

    first = await governance.reelection.maybe_trigger(GUILD)
    second = await governance.reelection.maybe_trigger(GUILD)

    assert len(first) == 1 and second == []
    assert first[0].auto_triggered is True
    assert first[0].trigger_reason == AUTO_TRIGGER_REASON
    assert first[0].initiator_id is None


@pytest.mark.asyncio
async def test_trigger_requires_tenure_to_exceed_minimum(governance, seated_admin):
    await seated_admin(days=7)

    assert await governance.reelection.maybe_trigger(GUILD) == []


@pytest.mark.asyncio
async def test_trigger_respects_cadence(governance, seated_admin, clock):
    await seated_admin()
    [session] = await governance.reelection.maybe_trigger(GUILD)
    for voter in (100, 101, 102):
        await governance.reelection.vote(session.id, voter, True)
    await governance.reelection.evaluate(session.id)

    clock.advance(hours=24)
    assert await governance.reelection.maybe_trigger(GUILD) == []

    clock.advance(hours=168)
    assert len(await governance.reelection.maybe_trigger(GUILD)) == 1


@pytest.mark.asyncio
async def test_trigger_skips_admin_under_impeachment(governance, seated_admin):
    await seated_admin()
    await governance.impeachment.initiate(GUILD, ADMIN, 100, "inactive")

    assert await governance.reelection.maybe_trigger(GUILD) == []


@pytest.mark.asyncio
async def test_stale_session_expires_on_sweep(governance, seated_admin, clock, gateway):
    await seated_admin()
    session = await governance.reelection.create_session(GUILD, ADMIN)
    await governance.reelection.vote(session.id, 100, False)

    clock.advance(hours=71)
    assert await governance.reelection.sweep(GUILD) == 0

    clock.advance(hours=1)
    assert await governance.reelection.sweep(GUILD) == 1
    assert (await governance.reelection.get(session.id)).status is SessionStatus.CANCELLED
    assert gateway.revoked == []


@pytest.mark.asyncio
async def test_statistics_report_support_rate(governance, seated_admin):
    await seated_admin(days=10)
    session = await governance.reelection.create_session(GUILD, ADMIN)
    await governance.reelection.vote(session.id, 100, True)
    await governance.reelection.vote(session.id, 101, False)

    [stats] = await governance.reelection.statistics(GUILD)

    assert stats.session.id == session.id
    assert stats.support_rate == 50
    assert stats.tenure_days == 10
