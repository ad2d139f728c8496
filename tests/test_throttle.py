import asyncio

import pytest

from sniper_bot.utils.throttle import RequestThrottle


class FakeClock:
    """Monotonic clock that only moves when the throttle sleeps or the test advances it."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


async def test_first_call_passes_immediately():
    clock = FakeClock()
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)

    await throttle.await_window()
    assert clock.sleeps == []


async def test_back_to_back_calls_are_spaced():
    clock = FakeClock()
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)

    await throttle.await_window()
    clock.now += 0.25
    await throttle.await_window()

    assert clock.sleeps == [pytest.approx(0.75)]


async def test_no_wait_after_interval_has_elapsed():
    clock = FakeClock()
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)

    await throttle.await_window()
    clock.now += 5
    await throttle.await_window()

    assert clock.sleeps == []


async def test_concurrent_callers_admitted_one_per_window():
    clock = FakeClock()
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)
    admitted: list[float] = []

    async def caller():
        await throttle.await_window()
        admitted.append(clock.now)

    await asyncio.gather(*(caller() for _ in range(4)))

    assert admitted == [100.0, 101.0, 102.0, 103.0]


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        RequestThrottle(-1)
