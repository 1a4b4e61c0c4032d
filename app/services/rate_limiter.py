"""
Client-side minimum-interval limiter for user-submitted queries.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class MinimumIntervalLimiter:
    """
    Accepts at most one request per ``min_interval_seconds``.

    Unlike a throttling limiter it never sleeps: a request arriving too
    early is rejected and does not move the window.
    """

    def __init__(
        self,
        *,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval_seconds = max(0.0, min_interval_seconds)
        self._clock = clock
        self._last_accepted: float | None = None
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """
        Record and accept the request if the interval has elapsed; otherwise reject.
        """

        with self._lock:
            now = self._clock()
            if (
                self._last_accepted is not None
                and now - self._last_accepted < self._min_interval_seconds
            ):
                return False
            self._last_accepted = now
            return True

    def seconds_remaining(self) -> float:
        with self._lock:
            if self._last_accepted is None:
                return 0.0
            elapsed = self._clock() - self._last_accepted
            return max(0.0, self._min_interval_seconds - elapsed)
