"""
Provides a per-client fixed-window rate limiter for the HTTP API.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class ClientRateLimiter:
    """
    Counts requests per client address within fixed time windows.
    """

    def __init__(self, max_requests: int = 100, window_seconds: float = 900.0):
        """
        Initializes the rate limiter.

        Args:
            max_requests: Requests allowed per client within one window.
            window_seconds: Length of a window in seconds.
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        # client -> (window start, request count)
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = asyncio.Lock()

    async def acquire(self, client: str) -> bool:
        """
        Records a request from `client`.

        Returns:
            True if the request is within the limit, False if it must be rejected.
        """
        async with self._lock:
            now = time.monotonic()
            start, count = self._windows.get(client, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0

            count += 1
            self._windows[client] = (start, count)
            self._prune(now)

            if count > self.max_requests:
                if count == self.max_requests + 1:
                    log.warning(
                        f"[yellow]Rate limit hit for {client}: "
                        f"{self.max_requests} requests per {self.window_seconds:g}s"
                        "[/yellow]"
                    )
                return False
            return True

    def retry_after(self, client: str) -> int:
        """Seconds until the client's current window resets."""
        start, _ = self._windows.get(client, (time.monotonic(), 0))
        remaining = self.window_seconds - (time.monotonic() - start)
        return max(0, int(remaining + 0.999))

    def _prune(self, now: float) -> None:
        """Forgets clients whose window has expired."""
        expired = [
            c for c, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for c in expired:
            del self._windows[c]
