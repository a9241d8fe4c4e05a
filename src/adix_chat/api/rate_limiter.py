"""Rate limiter implementation using fixed per-client windows."""

import asyncio
import time
from typing import Callable, Dict, Optional

from fastapi import Request
from structlog import get_logger

from ..domain.models import RateLimitEntry

logger = get_logger()


class RateLimiter:
    """Counts AI calls per client key in fixed windows.

    The first request of a fresh window is always admitted, whatever the
    limit; only later requests in the same window are compared against it.
    """

    def __init__(
        self,
        limit: int = 3,
        window_seconds: float = 60.0,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._limit = limit
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval or window_seconds
        self._clock = clock
        self.entries: Dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info(
            "rate_limiter_initialized",
            rate_limit=limit,
            window_seconds=window_seconds
        )

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        logger.info("rate_limit_changed", old=self._limit, new=value)
        self._limit = value

    async def start(self):
        """Start the expired-entry sweep task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._periodic_cleanup())

    async def stop(self):
        """Stop the expired-entry sweep task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    async def _periodic_cleanup(self):
        while True:
            try:
                await asyncio.sleep(self.sweep_interval)
                await self.sweep_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("rate_limiter_cleanup_error", error=str(e))

    async def sweep_expired(self) -> int:
        """Drop entries whose window has closed. Returns how many were dropped."""
        async with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self.entries.items()
                if now >= entry.window_reset_at
            ]
            for key in expired:
                del self.entries[key]
        if expired:
            logger.debug("rate_limiter_swept", removed=len(expired))
        return len(expired)

    async def check_rate_limit(self, key: str, limit: Optional[int] = None) -> bool:
        """Record a request for ``key`` and report whether it is allowed."""
        await self.start()

        if limit is None:
            limit = self._limit

        async with self._lock:
            now = self._clock()
            entry = self.entries.get(key)

            if entry is None or now >= entry.window_reset_at:
                self.entries[key] = RateLimitEntry(
                    client_key=key,
                    count=1,
                    window_reset_at=now + self.window_seconds,
                )
                return True

            if entry.count >= limit:
                logger.warning(
                    "rate_limit_exceeded",
                    key=key,
                    current_requests=entry.count,
                    rate_limit=limit
                )
                return False

            entry.count += 1
            logger.debug(
                "request_tracked",
                key=key,
                current_requests=entry.count,
                rate_limit=limit
            )
            return True

    async def active_clients(self) -> int:
        """Number of clients with an open window."""
        async with self._lock:
            now = self._clock()
            return sum(1 for e in self.entries.values() if now < e.window_reset_at)

    async def reset(self) -> None:
        async with self._lock:
            self.entries.clear()
        logger.info("rate_limiter_reset")


def client_key(request: Request) -> str:
    """Identity used to bucket a request: the peer address."""
    return request.client.host if request.client else "unknown"
