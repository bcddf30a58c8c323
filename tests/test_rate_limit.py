"""
Rate Limiter Unit Tests

Drives ``MinIntervalRateLimiter`` with a manual clock and a recording
sleep, so the spacing guarantees are checked without real waiting.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import ManualClock, RecordingSleep
from impact_rag.services.rate_limit import MinIntervalRateLimiter


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sleep(clock: ManualClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def limiter(clock: ManualClock, sleep: RecordingSleep) -> MinIntervalRateLimiter:
    return MinIntervalRateLimiter(0.1, clock=clock, sleep=sleep)


class TestMinIntervalRateLimiter:
    """Tests for request-start spacing."""

    @pytest.mark.asyncio
    async def test_first_request_does_not_wait(
        self, limiter: MinIntervalRateLimiter, sleep: RecordingSleep
    ) -> None:
        await limiter.acquire()

        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_back_to_back_requests_wait_full_interval(
        self, limiter: MinIntervalRateLimiter, sleep: RecordingSleep
    ) -> None:
        await limiter.acquire()
        await limiter.acquire()

        assert sleep.delays == [pytest.approx(0.1)]

    @pytest.mark.asyncio
    async def test_waits_only_for_remaining_time(
        self,
        limiter: MinIntervalRateLimiter,
        clock: ManualClock,
        sleep: RecordingSleep,
    ) -> None:
        await limiter.acquire()
        clock.now += 0.04
        await limiter.acquire()

        assert sleep.delays == [pytest.approx(0.06)]

    @pytest.mark.asyncio
    async def test_no_wait_after_interval_elapsed(
        self,
        limiter: MinIntervalRateLimiter,
        clock: ManualClock,
        sleep: RecordingSleep,
    ) -> None:
        await limiter.acquire()
        clock.now += 0.5
        await limiter.acquire()

        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_spaced(
        self,
        limiter: MinIntervalRateLimiter,
        clock: ManualClock,
    ) -> None:
        starts: list[float] = []

        async def request() -> None:
            await limiter.acquire()
            starts.append(clock())

        await asyncio.gather(*(request() for _ in range(5)))

        assert len(starts) == 5
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(gap >= 0.1 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_zero_interval_never_sleeps(self, sleep: RecordingSleep) -> None:
        limiter = MinIntervalRateLimiter(0.0, sleep=sleep)

        for _ in range(3):
            await limiter.acquire()

        assert sleep.delays == []

    def test_negative_interval_raises(self) -> None:
        with pytest.raises(ValueError, match="min_interval"):
            MinIntervalRateLimiter(-0.1)

    def test_exposes_interval(self, limiter: MinIntervalRateLimiter) -> None:
        assert limiter.min_interval == 0.1
