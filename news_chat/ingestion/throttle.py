"""
Politeness Throttling

Delay policies applied between sources and between embedding batches during
ingestion. Policies take injectable sleep and clock functions so tests can
drive the pipeline without real wall-clock delays.
"""

import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ThrottlePolicy:
    """Base policy: wait() is called between two consecutive units of work."""

    def wait(self) -> None:
        raise NotImplementedError


class NoDelay(ThrottlePolicy):
    """Policy that never waits."""

    def wait(self) -> None:
        return None


class FixedDelay(ThrottlePolicy):
    """Sleep for a fixed number of seconds on every call."""

    def __init__(self, seconds: float, sleep: Callable[[float], None] = time.sleep):
        if seconds < 0:
            raise ValueError(f"Delay cannot be negative, got {seconds}")
        self.seconds = seconds
        self._sleep = sleep

    def wait(self) -> None:
        if self.seconds > 0:
            self._sleep(self.seconds)

    def __repr__(self) -> str:
        return f"FixedDelay(seconds={self.seconds})"


class TokenBucket(ThrottlePolicy):
    """
    Token bucket rate limiter.

    Allows bursts of up to `capacity` calls, refilling at `rate` tokens per
    second. wait() blocks only when the bucket is empty.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the bucket.

        Args:
            rate: Tokens added per second (must be positive)
            capacity: Maximum burst size
            sleep: Sleep function
            clock: Monotonic clock function
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.rate = rate
        self.capacity = capacity
        self._sleep = sleep
        self._clock = clock or time.monotonic
        self._tokens = float(capacity)
        self._last_refill = self._clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._last_refill = now

    def wait(self) -> None:
        self._refill()
        if self._tokens < 1:
            deficit = (1 - self._tokens) / self.rate
            logger.debug(f"Token bucket empty, waiting {deficit:.2f}s")
            self._sleep(deficit)
            self._refill()
            # The sleep covered the deficit even if the clock did not advance
            self._tokens = max(self._tokens, 1.0)
        self._tokens -= 1

    def __repr__(self) -> str:
        return f"TokenBucket(rate={self.rate}, capacity={self.capacity})"
