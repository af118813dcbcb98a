"""Where: src/mbapi/platform/musicbrainz/rate_limit.py
What: Thread-safe sliding-window throttle for MusicBrainz WS2 requests.
Why: MusicBrainz rejects clients that burst above its published quota.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Final

from mbapi.platform.logging import logger


class RateLimiter:
    """Admit at most ``max_calls`` calls in any trailing ``period`` seconds.

    The window is half-open: an admission exactly ``period`` seconds old no
    longer counts. The limiter is meant to be constructed by the caller and
    injected into one or more clients; clients sharing an instance share
    the quota.
    """

    def __init__(
        self,
        max_calls: int,
        period: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_calls <= 0:
            raise ValueError("max_calls must be a positive integer")
        if period <= 0:
            raise ValueError("period must be positive")
        self.max_calls: Final[int] = max_calls
        self.period: Final[float] = period
        self._clock = clock
        self._sleep = sleep
        self._lock: Final[threading.Lock] = threading.Lock()
        # Admission timestamps in arrival order.
        self._window: deque[float] = deque()

    def _evict(self, now: float) -> None:
        cutoff = now - self.period
        while self._window and self._window[0] <= cutoff:
            _ = self._window.popleft()

    def admit(self) -> None:
        """Block until a call may proceed, then record it.

        Waiting callers hold the lock while sleeping, so they are admitted
        one at a time.
        """

        with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._window) < self.max_calls:
                    self._window.append(now)
                    return
                delay = self._window[0] + self.period - now
                logger.debug(
                    "Client side rate limiter activated: cool down for %.2fs",
                    delay,
                    extra={"http_event": "ratelimit.wait", "delay": delay},
                )
                self._sleep(delay)

    @property
    def pending(self) -> int:
        """Number of admissions still inside the trailing window."""

        with self._lock:
            self._evict(self._clock())
            return len(self._window)


__all__ = ["RateLimiter"]
