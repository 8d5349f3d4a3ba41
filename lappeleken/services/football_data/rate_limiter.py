"""
Sliding-window rate limiter for football-data.org.

The free tier allows 25 calls per rolling minute. Calls are recorded as
monotonic timestamps and anything older than the window is dropped before
each check.
"""
import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from lappeleken.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_CALLS = 25
DEFAULT_WINDOW_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """
    Track outgoing calls in a rolling time window.

    Args:
        max_calls: Calls allowed per window
        window_seconds: Window length
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

    def can_make_call(self) -> bool:
        self._prune(self._clock())
        return len(self._calls) < self.max_calls

    def record_call(self) -> None:
        now = self._clock()
        self._calls.append(now)
        self._prune(now)

    def time_until_next_call(self) -> float:
        """Seconds until a call slot frees up (0 if one is free now)."""
        now = self._clock()
        self._prune(now)
        if len(self._calls) < self.max_calls:
            return 0.0
        return max(0.0, self.window_seconds - (now - self._calls[0]))

    async def acquire(self, max_wait: float = DEFAULT_WINDOW_SECONDS) -> bool:
        """
        Reserve a call slot, sleeping if a slot frees up within ``max_wait``.

        Returns:
            True if a slot was reserved, False if the caller should give up
        """
        async with self._lock:
            if not self.can_make_call():
                wait = self.time_until_next_call()
                if wait <= 0 or wait >= max_wait:
                    logger.warning(f"Rate limit reached, next call in {wait:.1f}s")
                    return False
                logger.info(f"Rate limit reached, waiting {wait:.1f}s")
                await asyncio.sleep(wait)
                # The event loop may fire the timer marginally early
                while not self.can_make_call():
                    await asyncio.sleep(self.time_until_next_call())
            self.record_call()
            return True

    def get_usage_stats(self) -> Dict[str, Optional[float]]:
        now = self._clock()
        self._prune(now)
        reset_in = (self.window_seconds - (now - self._calls[0])) if self._calls else None
        return {
            "current": len(self._calls),
            "max": self.max_calls,
            "reset_in_seconds": reset_in,
        }
