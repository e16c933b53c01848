"""Fixed-window rate limiting for mutation endpoints."""

import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Callable

from fastapi import Request

from .config import settings
from .exceptions import RateLimitError
from .middleware import get_client_ip
from .observability import metrics_collector

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimitStore(ABC):
    """Counter storage shared by every limiter of a process."""

    @abstractmethod
    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        """
        Count one request against ``key``.

        Returns:
            The request count in the current window and the time the window resets
        """

    @abstractmethod
    async def clear(self) -> None:
        """Forget every counter."""


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store.

    Each worker process keeps its own counters, so with several instances a
    client gets the limit once per instance.
    """

    def __init__(self, cleanup_interval: float = 300.0):
        self._windows: dict[str, tuple[int, float]] = {}
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.monotonic()

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at <= now]
        for key in expired:
            del self._windows[key]

    async def hit(self, key: str, window_seconds: int) -> tuple[int, float]:
        # No await in between, so the read-modify-write is atomic on the loop
        now = time.monotonic()
        self._cleanup(now)

        count, reset_at = self._windows.get(key, (0, 0.0))
        if reset_at <= now:
            count, reset_at = 0, now + window_seconds

        count += 1
        self._windows[key] = (count, reset_at)
        return count, reset_at

    async def clear(self) -> None:
        self._windows.clear()


rate_limit_store: RateLimitStore = InMemoryRateLimitStore()


class RateLimiter:
    """
    FastAPI dependency enforcing a per-client limit for one route group.

    Args:
        group: Name of the route group the counter is shared by
        limit: Callable returning the allowed requests per window
        store: Counter store; the process-wide store by default
    """

    def __init__(
        self,
        group: str,
        limit: Callable[[], int],
        window_seconds: int = WINDOW_SECONDS,
        store: RateLimitStore | None = None,
    ):
        self.group = group
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store

    async def __call__(self, request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        store = self.store or rate_limit_store
        limit = self.limit()
        client = get_client_ip(request)

        count, reset_at = await store.hit(f"{self.group}:{client}", self.window_seconds)
        if count > limit:
            retry_after = max(1, math.ceil(reset_at - time.monotonic()))
            metrics_collector.record_rate_limited(self.group)
            logger.warning(
                "Rate limit exceeded",
                extra={"group": self.group, "client_ip": client, "limit": limit, "count": count}
            )
            raise RateLimitError(retry_after=retry_after, limit=limit)


booking_create_limiter = RateLimiter(
    "booking-create", lambda: settings.rate_limit_booking_create_per_minute
)
mutation_limiter = RateLimiter(
    "mutation", lambda: settings.rate_limit_mutations_per_minute
)
