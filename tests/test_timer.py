# tests/test_timer.py
"""Bidding countdown driven by an asyncio task."""

import asyncio

from gridrival.workflows.game import GamePhase
from gridrival.workflows.timer import BiddingTimer


async def wait_for_phase(lifecycle, phase, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while lifecycle.phase is not phase:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"still in {lifecycle.phase.value}")
        await asyncio.sleep(0.001)


def test_start_without_loop_returns_none():
    timer = BiddingTimer("g", lambda generation: True)
    assert timer.start(0) is None
    assert not timer.active
    assert timer.generation == 1


def test_cancel_bumps_generation():
    timer = BiddingTimer("g", lambda generation: True)
    timer.cancel()
    timer.cancel()
    assert timer.generation == 2


def test_countdown_dispatches_on_expiry(make_lifecycle):
    lifecycle = make_lifecycle(teams=2, timer_interval=0.001)

    async def scenario():
        lifecycle.start_round()
        lifecycle.start_bidding()
        assert lifecycle.timer.active
        lifecycle.adjust_timer(2)
        await wait_for_phase(lifecycle, GamePhase.RESULTS)

    asyncio.run(scenario())
    assert len(lifecycle.game.round_results) == 1
    assert not lifecycle.timer.active


def test_manual_end_stops_countdown(make_lifecycle):
    lifecycle = make_lifecycle(teams=2, timer_interval=0.01)

    async def scenario():
        lifecycle.start_round()
        lifecycle.start_bidding()
        lifecycle.end_bidding()
        await asyncio.sleep(0.05)
        return lifecycle.game.bidding_time_remaining

    remaining = asyncio.run(scenario())
    assert remaining == 300
    assert lifecycle.phase is GamePhase.RESULTS


def test_stale_task_stops_after_restart():
    ticks = []

    def on_tick(generation):
        ticks.append(generation)
        return True

    async def scenario():
        timer = BiddingTimer("g", on_tick, interval=0.001)
        timer.start(0)
        await asyncio.sleep(0.01)
        timer.start(1)
        await asyncio.sleep(0.01)
        timer.cancel()
        await asyncio.sleep(0.005)
        return timer.generation

    final_generation = asyncio.run(scenario())
    assert ticks
    assert set(ticks) <= {1, 2}
    assert final_generation == 3


def test_adjust_timer_restarts_finished_countdown(make_lifecycle):
    lifecycle = make_lifecycle(teams=2, timer_interval=0.001, auto_dispatch_on_timeout=False)

    async def scenario():
        lifecycle.start_round()
        lifecycle.start_bidding()
        lifecycle.adjust_timer(1)
        deadline = asyncio.get_running_loop().time() + 2.0
        while lifecycle.timer.active:
            assert asyncio.get_running_loop().time() < deadline
            await asyncio.sleep(0.001)
        assert lifecycle.game.bidding_time_remaining == 0
        assert lifecycle.phase is GamePhase.BIDDING

        lifecycle.adjust_timer(5)
        assert lifecycle.timer.active
        await asyncio.sleep(0.05)
        return lifecycle.game.bidding_time_remaining

    remaining = asyncio.run(scenario())
    assert remaining < 5
    assert lifecycle.phase is GamePhase.BIDDING
