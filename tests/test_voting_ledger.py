import pytest

from govcord.datatypes.governance_datatypes import Visibility
from govcord.governance.errors import (
    ConflictError,
    DeadlinePassedError,
    InvalidPhaseError,
    NotFoundError,
    ValidationError,
)

GUILD = 1000


@pytest.fixture
def open_voting(governance, seed_profile, seed_voters):
    """Election in its voting phase with candidates 701, 702 and 801."""

    async def _open():
        election = await governance.lifecycle.initiate(GUILD)
        await seed_profile(1, cohort="7")
        await seed_profile(2, cohort="7")
        await seed_profile(3, cohort="8")
        for user_id in (1, 2, 3):
            await governance.registry.register(election.id, user_id)
        await seed_voters(range(100, 110))
        return await governance.lifecycle.begin_voting(election.id)

    return _open


@pytest.mark.asyncio
async def test_cast_and_tally(governance, open_voting):
    election = await open_voting()
    ledger = governance.ledger

    await ledger.cast(election.id, 100, "701")
    await ledger.cast(election.id, 101, "701", Visibility.PRIVATE)
    await ledger.cast(election.id, 102, " 702 ")

    tallies = {t.cohort: t.counts for t in await ledger.tally(election.id)}

    assert tallies == {"7": {"701": 2, "702": 1}, "8": {"801": 0}}
    summary = await ledger.ballot_summary(election.id)
    assert summary[Visibility.PUBLIC] == 2
    assert summary[Visibility.PRIVATE] == 1


@pytest.mark.asyncio
async def test_one_ballot_per_voter_per_election(governance, open_voting):
    election = await open_voting()
    await governance.ledger.cast(election.id, 100, "701")

    with pytest.raises(ConflictError):
        await governance.ledger.cast(election.id, 100, "801")

    tallies = {t.cohort: t.counts for t in await governance.ledger.tally(election.id)}
    assert tallies["8"]["801"] == 0


@pytest.mark.asyncio
async def test_candidates_cannot_vote(governance, open_voting):
    election = await open_voting()

    with pytest.raises(ValidationError):
        await governance.ledger.cast(election.id, 1, "801")


@pytest.mark.asyncio
async def test_unknown_code_is_rejected(governance, open_voting):
    election = await open_voting()

    with pytest.raises(NotFoundError):
        await governance.ledger.cast(election.id, 100, "799")


@pytest.mark.asyncio
async def test_voter_needs_profile(governance, open_voting):
    election = await open_voting()

    with pytest.raises(ValidationError):
        await governance.ledger.cast(election.id, 555, "701")


@pytest.mark.asyncio
async def test_ballots_rejected_during_registration(governance, seed_profile, seed_voters):
    election = await governance.lifecycle.initiate(GUILD)
    await seed_profile(1)
    await governance.registry.register(election.id, 1)
    await seed_voters([100])

    with pytest.raises(InvalidPhaseError):
        await governance.ledger.cast(election.id, 100, "701")


@pytest.mark.asyncio
async def test_ballots_rejected_after_deadline(governance, open_voting, clock):
    election = await open_voting()
    clock.now = election.voting_ends_at

    with pytest.raises(DeadlinePassedError):
        await governance.ledger.cast(election.id, 100, "701")


@pytest.mark.asyncio
async def test_ballots_rejected_after_completion(governance, open_voting):
    election = await open_voting()
    await governance.lifecycle.finalize(election.id)

    with pytest.raises(InvalidPhaseError):
        await governance.ledger.cast(election.id, 100, "701")
