import asyncio

import pytest

from govcord.scheduler.governance_scheduler import GovernanceScheduler

GUILD = 1000


@pytest.mark.asyncio
async def test_register_runs_callback_repeatedly():
    scheduler = GovernanceScheduler()
    calls = []

    async def scan(guild_id):
        calls.append(guild_id)

    scheduler.register(GUILD, "deadlines", 0.01, scan)
    await asyncio.sleep(0.05)
    await scheduler.shutdown()

    assert len(calls) >= 2
    assert set(calls) == {GUILD}


@pytest.mark.asyncio
async def test_reregister_replaces_previous_loop():
    scheduler = GovernanceScheduler()
    first_calls, second_calls = [], []

    async def first(guild_id):
        first_calls.append(guild_id)

    async def second(guild_id):
        second_calls.append(guild_id)

    dispose_first = scheduler.register(GUILD, "deadlines", 0.01, first)
    await asyncio.sleep(0.02)
    scheduler.register(GUILD, "deadlines", 0.01, second)
    seen = len(first_calls)

    dispose_first()
    await asyncio.sleep(0.05)

    assert len(first_calls) == seen
    assert second_calls
    assert scheduler.is_registered(GUILD, "deadlines")
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_failing_callback_keeps_loop_alive():
    scheduler = GovernanceScheduler()
    calls = []

    async def flaky(guild_id):
        calls.append(guild_id)
        raise RuntimeError("boom")

    scheduler.register(GUILD, "election-trigger", 0.01, flaky)
    await asyncio.sleep(0.05)

    assert len(calls) >= 2
    assert scheduler.is_registered(GUILD, "election-trigger")
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_dispose_guild_only_touches_that_guild():
    scheduler = GovernanceScheduler()

    async def noop(guild_id):
        return None

    for label in ("election-trigger", "deadlines"):
        scheduler.register(GUILD, label, 10, noop)
    scheduler.register(2000, "deadlines", 10, noop)
    await asyncio.sleep(0)

    assert scheduler.dispose_guild(GUILD) == 2
    await asyncio.sleep(0)
    assert not scheduler.is_registered(GUILD, "deadlines")
    assert scheduler.is_registered(2000, "deadlines")
    await scheduler.shutdown()
    assert not scheduler.is_registered(2000, "deadlines")
