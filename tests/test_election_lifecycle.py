import json

import pytest

from govcord.datatypes.governance_datatypes import ElectionStatus, ElectionType
from govcord.governance.errors import ConflictError, InvalidPhaseError, NoCandidatesError, NotFoundError
from govcord.governance.election_naming import election_name

GUILD = 1000
OTHER_GUILD = 2000


async def _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7", "7", "8", "8")):
    election = await governance.lifecycle.initiate(GUILD)
    for offset, cohort in enumerate(cohorts, start=1):
        await seed_profile(offset, cohort=cohort)
        await governance.registry.register(election.id, offset)
    await seed_voters(range(100, 120))
    return election


@pytest.mark.asyncio
async def test_initiate_opens_registration(governance, settings, clock, notifier):
    election = await governance.lifecycle.initiate(GUILD, initiated_by=42)

    assert election.status is ElectionStatus.CANDIDATE_REGISTRATION
    assert election.election_type is ElectionType.INITIAL
    assert election.registration_ends_at == clock() + 24 * 3600
    assert election.voting_ends_at == election.registration_ends_at + 48 * 3600
    assert any("open for candidates" in text for text in notifier.texts())


@pytest.mark.asyncio
async def test_only_one_open_election_per_guild(governance):
    await governance.lifecycle.initiate(GUILD)

    with pytest.raises(ConflictError):
        await governance.lifecycle.initiate(GUILD)

    other = await governance.lifecycle.initiate(OTHER_GUILD)
    assert other.guild_id == OTHER_GUILD


@pytest.mark.asyncio
async def test_new_election_allowed_after_cancel(governance):
    first = await governance.lifecycle.initiate(GUILD)
    await governance.lifecycle.cancel(first.id, "test")

    second = await governance.lifecycle.initiate(GUILD)

    assert second.id != first.id
    assert (await governance.lifecycle.get(first.id)).status is ElectionStatus.CANCELLED


@pytest.mark.asyncio
async def test_begin_voting_requires_candidates(governance):
    election = await governance.lifecycle.initiate(GUILD)

    with pytest.raises(NoCandidatesError):
        await governance.lifecycle.begin_voting(election.id)

    assert (await governance.lifecycle.get(election.id)).status is ElectionStatus.CANDIDATE_REGISTRATION


@pytest.mark.asyncio
async def test_begin_voting_twice_is_a_phase_error(governance, seed_profile, seed_voters):
    election = await _election_with_candidates(governance, seed_profile, seed_voters)
    await governance.lifecycle.begin_voting(election.id)

    with pytest.raises(InvalidPhaseError):
        await governance.lifecycle.begin_voting(election.id)


@pytest.mark.asyncio
async def test_finalize_seats_strict_winners_only(governance, seed_profile, seed_voters, gateway):
    election = await _election_with_candidates(governance, seed_profile, seed_voters)
    await governance.lifecycle.begin_voting(election.id)
    ledger = governance.ledger
    # Cohort 7: 701 beats 702 two to one. Cohort 8: 801 and 802 tie.
    await ledger.cast(election.id, 100, "701")
    await ledger.cast(election.id, 101, "701")
    await ledger.cast(election.id, 102, "702")
    await ledger.cast(election.id, 103, "801")
    await ledger.cast(election.id, 104, "802")

    result = await governance.lifecycle.finalize(election.id)

    by_cohort = {c.cohort: c for c in result.cohorts}
    assert by_cohort["7"].seated and by_cohort["7"].winner_user_id == 1
    assert by_cohort["8"].winner_code is None and by_cohort["8"].note == "tie"
    assert result.total_ballots == 5
    assert gateway.granted == [(GUILD, 1)]

    stored = await governance.lifecycle.get(election.id)
    assert stored.status is ElectionStatus.COMPLETED
    assert stored.ended_at is not None
    assert stored.results["cohorts"][0]["winner_code"] == "701"


@pytest.mark.asyncio
async def test_cohort_without_ballots_has_no_winner(governance, seed_profile, seed_voters, gateway):
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    await governance.lifecycle.begin_voting(election.id)

    result = await governance.lifecycle.finalize(election.id)

    assert result.cohorts[0].note == "no ballots"
    assert gateway.granted == []


@pytest.mark.asyncio
async def test_finalize_twice_does_not_appoint_twice(governance, seed_profile, seed_voters, gateway):
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    await governance.lifecycle.begin_voting(election.id)
    await governance.ledger.cast(election.id, 100, "701")
    await governance.lifecycle.finalize(election.id)

    with pytest.raises(InvalidPhaseError):
        await governance.lifecycle.finalize(election.id)

    assert gateway.granted == [(GUILD, 1)]


@pytest.mark.asyncio
async def test_winner_not_seated_when_cohort_seat_is_held(governance, seed_profile, seed_voters, gateway):
    await governance.executor.appoint(GUILD, 500, "7")
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    await governance.lifecycle.begin_voting(election.id)
    await governance.ledger.cast(election.id, 100, "701")

    result = await governance.lifecycle.finalize(election.id)

    assert result.cohorts[0].winner_code == "701"
    assert not result.cohorts[0].seated
    assert result.cohorts[0].note == "seat already held"
    assert gateway.granted == [(GUILD, 500)]


@pytest.mark.asyncio
async def test_winner_holding_another_cohort_seat_is_not_reported_seated(
    governance, seed_profile, seed_voters, gateway, notifier
):
    await governance.executor.appoint(GUILD, 1, "8")
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    await governance.lifecycle.begin_voting(election.id)
    await governance.ledger.cast(election.id, 100, "701")

    result = await governance.lifecycle.finalize(election.id)

    cohort = result.cohorts[0]
    assert cohort.winner_code == "701"
    assert not cohort.seated
    assert cohort.note == "winner already holds the seat for cohort 8"
    assert result.winners == [cohort]
    overview = await governance.lifecycle.status_overview(GUILD)
    assert [(a.user_id, a.cohort) for a in overview.administrators] == [(1, "8")]
    assert gateway.granted == [(GUILD, 1)]
    assert not any("(701) is elected" in text for text in notifier.texts())


@pytest.mark.asyncio
async def test_cancel_terminal_election_is_rejected(governance):
    election = await governance.lifecycle.initiate(GUILD)
    await governance.lifecycle.cancel(election.id)

    with pytest.raises(InvalidPhaseError):
        await governance.lifecycle.cancel(election.id)


@pytest.mark.asyncio
async def test_unknown_election_lookups(governance):
    with pytest.raises(NotFoundError):
        await governance.lifecycle.get(999)
    with pytest.raises(NotFoundError):
        await governance.lifecycle.require_open(GUILD)


@pytest.mark.asyncio
async def test_maybe_trigger_opens_initial_then_by_election(governance):
    first = await governance.lifecycle.maybe_trigger(GUILD)
    assert first.election_type is ElectionType.INITIAL
    assert await governance.lifecycle.maybe_trigger(GUILD) is None

    await governance.lifecycle.cancel(first.id)
    await governance.executor.appoint(GUILD, 500, "7")

    second = await governance.lifecycle.maybe_trigger(GUILD)
    assert second.election_type is ElectionType.REELECTION
    assert "by-election" in election_name(second)


@pytest.mark.asyncio
async def test_maybe_trigger_skips_full_guild(db, gateway, notifier, clock, seed_profile):
    from govcord.configuration.governance_settings import GovernanceSettings
    from govcord.governance.collaborators import SqliteProfileStore
    from govcord.governance.service import GovernanceService

    service = GovernanceService.build(
        db, GovernanceSettings({"max_administrators": 1}), SqliteProfileStore(db), gateway, notifier, clock
    )
    await service.executor.appoint(GUILD, 500, "7")

    assert await service.lifecycle.maybe_trigger(GUILD) is None


@pytest.mark.asyncio
async def test_advance_deadlines_walks_through_phases(governance, seed_profile, seed_voters, clock, gateway):
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    lifecycle = governance.lifecycle

    assert await lifecycle.advance_deadlines(GUILD) is None

    clock.now = election.registration_ends_at
    assert await lifecycle.advance_deadlines(GUILD) is ElectionStatus.VOTING
    await governance.ledger.cast(election.id, 100, "701")

    clock.now = election.voting_ends_at
    assert await lifecycle.advance_deadlines(GUILD) is ElectionStatus.COMPLETED
    assert gateway.granted == [(GUILD, 1)]
    assert await lifecycle.advance_deadlines(GUILD) is None


@pytest.mark.asyncio
async def test_advance_deadlines_cancels_empty_registration(governance, clock):
    election = await governance.lifecycle.initiate(GUILD)
    clock.now = election.registration_ends_at

    assert await governance.lifecycle.advance_deadlines(GUILD) is ElectionStatus.CANCELLED
    assert (await governance.lifecycle.get(election.id)).status is ElectionStatus.CANCELLED


@pytest.mark.asyncio
async def test_status_overview(governance, seed_profile, seed_voters):
    await governance.executor.appoint(GUILD, 500, "9")
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("8", "7", "7"))

    overview = await governance.lifecycle.status_overview(GUILD)

    assert overview.election.id == election.id
    assert list(overview.candidates_by_cohort.items()) == [("7", 2), ("8", 1)]
    assert overview.seats_by_cohort == {"9": 1}
    assert overview.open_seats == 7


@pytest.mark.asyncio
async def test_results_are_json_serialisable(governance, seed_profile, seed_voters):
    election = await _election_with_candidates(governance, seed_profile, seed_voters, cohorts=("7",))
    await governance.lifecycle.begin_voting(election.id)
    result = await governance.lifecycle.finalize(election.id)

    assert json.loads(json.dumps(result.to_dict()))["election_id"] == election.id
