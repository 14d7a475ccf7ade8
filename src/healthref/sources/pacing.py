"""
Request pacing for the search collaborators.

Each collaborator owns one RateLimiter, so pacing state lives with the
client instance rather than in module globals. The clock and sleep
functions are injectable for deterministic tests.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from healthref.logging import get_logger

logger = get_logger(__name__, component="pacing")


class RateLimiter:
    """
    Enforce a minimum interval between consecutive requests.

    Example:
        limiter = RateLimiter(min_interval=1.0)
        await limiter.wait()   # returns immediately
        await limiter.wait()   # sleeps until 1s after the first call
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> float:
        """
        Wait until the next request is allowed.

        Returns:
            Seconds slept (0.0 if no wait was needed)
        """
        async with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_call is not None:
                elapsed = now - self._last_call
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug("pacing_wait", seconds=round(waited, 3))
                    await self._sleep(waited)
                    now = self._clock()
            self._last_call = now
            return waited
