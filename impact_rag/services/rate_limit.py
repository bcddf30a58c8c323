"""
Minimum-Interval Rate Limiter

Protects a shared, globally rate-limited external quota by enforcing a
floor on the time between the *starts* of consecutive outbound requests.

One limiter instance is created per process by the composition root and
shared by every embedding call, so concurrent requests serialize through
the same "last request" clock. Clock and sleep are injectable so tests can
run with a fake clock and a no-op sleep.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class MinIntervalRateLimiter:
    """
    Async limiter enforcing ``min_interval`` seconds between request starts.

    Usage::

        limiter = MinIntervalRateLimiter(min_interval=0.1)
        await limiter.acquire()
        response = await client.post(...)

    Args:
        min_interval: Minimum seconds between two request starts.
            ``0`` disables waiting.
        clock: Monotonic clock returning seconds.
        sleep: Awaitable sleep used for the wait.
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must not be negative, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def acquire(self) -> None:
        """
        Wait until a request may start, then record its start time.

        The lock is held during the wait, so callers are released one at
        a time, each at least ``min_interval`` after the previous one.
        """
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                remaining = self._min_interval - elapsed
                if remaining > 0:
                    logger.debug("Rate limit: waiting %.3fs", remaining)
                    await self._sleep(remaining)
            self._last_request = self._clock()
