"""
Rate Governor - Per-adapter fixed-window request throttling.

Each source tolerates a different request rate. Every adapter owns one
governor and the dispatcher awaits ``acquire()`` on its behalf before a
search is issued, so backpressure is local to that adapter and never global.

Design Pattern: Fixed Window Counter
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import structlog


@dataclass(frozen=True)
class RateLimitPolicy:
    """Requests allowed per window"""
    requests: int = 10     # Requests allowed per window
    window: float = 60.0   # Window length (seconds)

    def __post_init__(self):
        if self.requests < 1:
            raise ValueError("requests must be >= 1")
        if self.window <= 0:
            raise ValueError("window must be > 0")

    def to_dict(self) -> Dict[str, float]:
        return {"requests": self.requests, "window": self.window}


class RateGovernor:
    """
    Fixed window rate governor for a single adapter.

    On each acquire:
    1. If the active window has elapsed, start a new one with a zero count
    2. If the count has reached the budget, sleep out the rest of the window,
       then start a new window
    3. Count the call and let it proceed

    A caller can spend a full budget at the end of one window and another
    full budget at the start of the next.

    Example:
        >>> governor = RateGovernor(RateLimitPolicy(requests=10, window=60))
        >>> await governor.acquire()  # Returns immediately while under budget
    """

    def __init__(
        self,
        policy: Optional[RateLimitPolicy] = None,
        name: str = "adapter",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the governor.

        Args:
            policy: Request budget (uses defaults if None)
            name: Owning adapter name, used in log context
            clock: Monotonic time source in seconds
            sleep: Coroutine used to suspend the caller
        """
        self.policy = policy or RateLimitPolicy()
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

        self.window_start: Optional[float] = None
        self.count_in_window = 0
        self.request_count = 0
        self.wait_count = 0

        self.logger = structlog.get_logger(__name__, adapter=name)

    async def acquire(self):
        """Wait until the adapter may issue one more request."""
        async with self._lock:
            now = self._clock()

            if self.window_start is None or now - self.window_start > self.policy.window:
                self.window_start = now
                self.count_in_window = 0

            if self.count_in_window >= self.policy.requests:
                delay = self.policy.window - (now - self.window_start)
                self.wait_count += 1
                self.logger.debug(
                    "rate_limit_wait",
                    delay=f"{delay:.2f}s",
                    requests=self.policy.requests,
                    window=self.policy.window,
                )
                if delay > 0:
                    await self._sleep(delay)
                self.window_start = self._clock()
                self.count_in_window = 0

            self.count_in_window += 1
            self.request_count += 1

    def reset(self):
        """Reset the governor to its initial state"""
        self.window_start = None
        self.count_in_window = 0
        self.request_count = 0
        self.wait_count = 0

        self.logger.info("rate_governor_reset")

    def get_stats(self) -> dict:
        """
        Get governor statistics.

        Returns:
            Dictionary with current statistics
        """
        return {
            "count_in_window": self.count_in_window,
            "request_count": self.request_count,
            "wait_count": self.wait_count,
            "policy": self.policy.to_dict(),
        }
