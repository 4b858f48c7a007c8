"""
Min-interval gate for remote pushes.

A push attempt is allowed only if at least `min_interval` seconds have
passed since the previous allowed attempt. Rejected attempts are not
queued: the local store already holds the change and the next allowed
push carries it.
"""

import time
from typing import Callable, Optional


class MinIntervalGate:
    """Allows at most one attempt per `min_interval` seconds."""

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self._min_interval = min_interval
        self._clock = clock
        self._last_attempt: Optional[float] = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_attempt(self) -> Optional[float]:
        """Clock reading of the last allowed attempt, None before the first."""
        return self._last_attempt

    def try_acquire(self) -> bool:
        """Record an attempt and return True if the window has passed."""
        now = self._clock()
        if (
            self._last_attempt is not None
            and now - self._last_attempt < self._min_interval
        ):
            return False
        self._last_attempt = now
        return True

    def reset(self) -> None:
        self._last_attempt = None
