import asyncio

import pytest

from config.settings import TimerConfig
from game.errors import TimerInvariantViolation
from game.timer import AsyncioScheduler, ManualScheduler, RoundTimer


def test_fires_exactly_once_after_limit(scheduler):
    calls = []
    timer = RoundTimer(scheduler, time_limit_ms=1000, on_time_up=lambda: calls.append(scheduler.now_ms()))
    timer.start()
    scheduler.advance(999)
    assert calls == []
    scheduler.advance(5000)
    assert calls == [1000]
    assert not timer.is_running
    assert timer.remaining_ms == 0
    assert timer.progress == 0.0


def test_stop_before_deadline_prevents_firing(scheduler):
    calls = []
    timer = RoundTimer(scheduler, time_limit_ms=1000, on_time_up=lambda: calls.append(1))
    timer.start()
    scheduler.advance(400)
    timer.stop()
    timer.stop()  # second stop is a no-op
    scheduler.advance(5000)
    assert calls == []
    assert scheduler.active_jobs() == 0


def test_progress_is_monotone_and_bounded(scheduler):
    timer = RoundTimer(scheduler, time_limit_ms=2000)
    timer.start()
    samples = [timer.progress]
    for _ in range(25):
        scheduler.advance(100)
        samples.append(timer.progress)
    assert samples[0] == 100.0
    assert all(0.0 <= p <= 100.0 for p in samples)
    assert all(a >= b for a, b in zip(samples, samples[1:]))
    assert samples[-1] == 0.0


def test_zero_limit_disables_timing(scheduler):
    calls = []
    timer = RoundTimer(scheduler, time_limit_ms=0, on_time_up=lambda: calls.append(1))
    timer.start()
    scheduler.advance(10_000)
    assert not timer.is_running
    assert timer.progress == 100.0
    assert calls == []


def test_uses_latest_handler(scheduler):
    calls = []
    timer = RoundTimer(scheduler, time_limit_ms=300, on_time_up=lambda: calls.append("old"))
    timer.start()
    timer.on_time_up = lambda: calls.append("new")
    scheduler.advance(300)
    assert calls == ["new"]


def test_rearm_requires_start(scheduler):
    calls = []
    timer = RoundTimer(scheduler, time_limit_ms=200, on_time_up=lambda: calls.append(1))
    timer.start()
    scheduler.advance(1000)
    assert calls == [1]
    timer.start()
    assert timer.elapsed_ms == 0
    scheduler.advance(200)
    assert calls == [1, 1]


def test_double_fire_is_an_invariant_violation(scheduler):
    timer = RoundTimer(scheduler, time_limit_ms=100)
    timer.start()
    scheduler.advance(100)
    with pytest.raises(TimerInvariantViolation):
        timer._fire()


def test_tick_granularity_bounds_detection(scheduler):
    fired_at = []
    timer = RoundTimer(scheduler, time_limit_ms=250, on_time_up=lambda: fired_at.append(scheduler.now_ms()))
    timer.start()
    scheduler.advance(1000)
    # ticks every 100 ms, so 250 ms is seen at the 300 ms tick
    assert fired_at == [300]


def test_asyncio_scheduler_fires_once():
    async def scenario():
        calls = []
        timer = RoundTimer(
            AsyncioScheduler(),
            time_limit_ms=60,
            on_time_up=lambda: calls.append(1),
            config=TimerConfig(tick_ms=10),
        )
        timer.start()
        await asyncio.sleep(0.3)
        return calls, timer.is_running

    calls, running = asyncio.run(scenario())
    assert calls == [1]
    assert running is False


def test_manual_scheduler_runs_jobs_in_time_order():
    scheduler = ManualScheduler(start_ms=1000)
    seen = []
    scheduler.call_every(300, lambda: seen.append(("a", scheduler.now_ms())))
    scheduler.call_every(200, lambda: seen.append(("b", scheduler.now_ms())))
    scheduler.advance(600)
    assert [t for _, t in seen] == sorted(t for _, t in seen)
    assert scheduler.now_ms() == 1600
