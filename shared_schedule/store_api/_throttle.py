"""Request throttle to enforce minimum delay between store calls."""

from __future__ import annotations

import asyncio
import time

from .const import DEFAULT_THROTTLE_SECONDS


class RequestThrottle:
    """Ensures a minimum interval between consecutive store requests.

    Polling subscriptions and user actions share one client, so requests are
    spaced out to keep bursts (e.g. several views refreshing at once) from
    tripping the service's rate limit.
    """

    def __init__(self, min_interval: float = DEFAULT_THROTTLE_SECONDS) -> None:
        self._min_interval = min_interval
        self._last_request: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def acquire(self) -> None:
        """Wait until the minimum interval has elapsed since the last request."""
        if self._min_interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait = self._min_interval - (now - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = time.monotonic()
