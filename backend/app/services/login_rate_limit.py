"""Failed-login throttling keyed by client IP."""

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable

logger = logging.getLogger(__name__)


class LoginRateLimiter:
    """Sliding-window counter of failed login attempts per client.

    Only failures are recorded; a client is throttled once it has
    max_attempts failures inside the last window_seconds.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def _prune(self, client_ip: str, now: float) -> list[float]:
        recent = [t for t in self._attempts.get(client_ip, []) if now - t < self.window_seconds]
        if recent:
            self._attempts[client_ip] = recent
        else:
            self._attempts.pop(client_ip, None)
        return recent

    async def is_limited(self, client_ip: str) -> bool:
        """True when the client has used up its failed attempts."""
        async with self._lock:
            recent = self._prune(client_ip, self._clock())
            limited = len(recent) >= self.max_attempts
        if limited:
            logger.warning("Login rate limit exceeded for %s", client_ip)
        return limited

    async def record_failure(self, client_ip: str) -> None:
        async with self._lock:
            self._attempts[client_ip].append(self._clock())

    async def reset(self, client_ip: str | None = None) -> None:
        """Reset counters for one client, or all clients."""
        async with self._lock:
            if client_ip:
                self._attempts.pop(client_ip, None)
            else:
                self._attempts.clear()

    async def cleanup(self) -> int:
        """Drop clients with no failures inside the window. Returns count removed."""
        async with self._lock:
            now = self._clock()
            stale = [
                ip
                for ip, attempts in self._attempts.items()
                if not any(now - t < self.window_seconds for t in attempts)
            ]
            for ip in stale:
                del self._attempts[ip]
        if stale:
            logger.info(f"Cleaned up {len(stale)} idle login throttle entries")
        return len(stale)
