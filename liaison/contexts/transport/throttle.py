"""
Request throttling for the API pipeline.

Two layers, applied in order before every API request:
- a random delay, so traffic does not arrive in bot-like bursts
- a sliding-window rate limit shared by every request of one pipeline
"""

import random
import threading
import time
from collections import deque
from typing import Callable, Optional

from loguru import logger


class RateLimiter:
    """
    Admit at most ``limit`` calls per ``interval`` seconds.

    Each caller reserves the earliest free admission slot under the lock and
    then sleeps outside it, so waiting callers never block each other's
    bookkeeping. Calls over quota wait; they never fail.
    """

    def __init__(
        self,
        limit: int = 1,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self.limit = limit
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        # Admission times of the last `limit` calls, oldest first
        self._admissions = deque(maxlen=limit)
        self._lock = threading.Lock()

    def reserve(self) -> float:
        """
        Reserve the next admission slot without waiting.

        Returns:
            Seconds the caller must wait before proceeding
        """
        with self._lock:
            now = self._clock()
            if len(self._admissions) < self.limit:
                admit_at = now
            else:
                admit_at = max(now, self._admissions[0] + self.interval)
            self._admissions.append(admit_at)
        return admit_at - now

    def acquire(self) -> float:
        """
        Block until this call is admitted.

        Returns:
            Seconds spent waiting
        """
        wait = self.reserve()
        if wait > 0:
            self._sleep(wait)
        return wait


def random_delay(min_delay: float, max_delay: float, sleep: Callable[[float], None] = time.sleep) -> float:
    """Sleep for a uniformly random duration in [min_delay, max_delay] seconds."""
    delay = random.uniform(min_delay, max_delay) if max_delay > 0 else 0.0
    if delay > 0:
        sleep(delay)
    return delay


class Throttle:
    """Random delay followed by a rate limit."""

    def __init__(
        self,
        limiter: Optional[RateLimiter] = None,
        min_delay: float = 1.0,
        max_delay: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(f"invalid delay range [{min_delay}, {max_delay}]")

        self.limiter = limiter or RateLimiter(sleep=sleep)
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        throttle_config,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "Throttle":
        """Build from the ``throttle`` section of the client config."""
        limiter = RateLimiter(
            limit=int(throttle_config.limit),
            interval=float(throttle_config.interval),
            clock=clock,
            sleep=sleep,
        )
        return cls(
            limiter=limiter,
            min_delay=float(throttle_config.min_delay),
            max_delay=float(throttle_config.max_delay),
            sleep=sleep,
        )

    def wait(self) -> float:
        """
        Apply the delay and the rate limit.

        Returns:
            Total seconds spent waiting
        """
        delayed = random_delay(self.min_delay, self.max_delay, sleep=self._sleep)
        limited = self.limiter.acquire()
        if limited > 0:
            logger.debug(f"Throttle: rate limit held request for {limited:.2f}s")
        return delayed + limited
