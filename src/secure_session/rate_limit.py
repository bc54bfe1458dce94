"""Fixed-window throttling of security failures.

Counting is delegated to the ``limits`` package. The default
:class:`~limits.aio.storage.MemoryStorage` is per process; deployments
with several workers pass a shared backend, e.g.
``limits.storage.storage_from_string("async+redis://localhost:6379")``.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter

from .config import SessionConfig
from .constants import RATE_LIMIT_NAMESPACE
from .exceptions import RateLimitExceeded


class RateLimiter:
    """Count events per identifier within a fixed window.

    Identifiers are typically ``"<purpose>:<client address>"``, e.g.
    ``"csrf:203.0.113.7"``. They are hashed before they reach the storage.

    Example:
        >>> limiter = RateLimiter()
        >>> await limiter.check_and_increment("csrf:203.0.113.7", 5, 300)
        True
    """

    def __init__(
        self,
        storage: Storage | None = None,
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._config = config or SessionConfig()
        self._logger = logger

    @staticmethod
    def _digest(identifier: str) -> str:
        return hashlib.sha256(identifier.encode("utf-8")).hexdigest()

    def _item(self, max_events: int | None, window_seconds: int | None) -> RateLimitItem:
        return RateLimitItemPerSecond(
            max_events or self._config.rate_limit_max_events,
            window_seconds or self._config.rate_limit_window,
            namespace=RATE_LIMIT_NAMESPACE,
        )

    async def check_and_increment(
        self,
        identifier: str,
        max_events: int | None = None,
        window_seconds: int | None = None,
    ) -> bool:
        """Record one event and report whether it is within budget.

        The first event opens a window of ``window_seconds``. Once more
        than ``max_events`` happened in it, every call returns False until
        the window closes.
        """
        item = self._item(max_events, window_seconds)
        digest = self._digest(identifier)
        allowed = await self._strategy.hit(item, digest)
        if not allowed and self._logger:
            self._logger.warning(
                "Rate limit exceeded: key=%s, max=%d per %ds",
                digest[:12],
                item.amount,
                item.get_expiry(),
            )
        return allowed

    async def ensure(
        self,
        identifier: str,
        max_events: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        """Record one event and raise when the budget is exhausted.

        Raises:
            RateLimitExceeded: With ``retry_after`` set to the seconds left
                in the current window.
        """
        if await self.check_and_increment(identifier, max_events, window_seconds):
            return
        retry_after = await self.retry_after(identifier, max_events, window_seconds)
        raise RateLimitExceeded(retry_after)

    async def retry_after(
        self,
        identifier: str,
        max_events: int | None = None,
        window_seconds: int | None = None,
    ) -> int:
        """Seconds until the current window resets, at least 1."""
        stats = await self._strategy.get_window_stats(
            self._item(max_events, window_seconds), self._digest(identifier)
        )
        return max(1, math.ceil(stats.reset_time - time.time()))

    async def attempts(
        self,
        identifier: str,
        max_events: int | None = None,
        window_seconds: int | None = None,
    ) -> int:
        """Return the event count in the current window, capped at the limit."""
        item = self._item(max_events, window_seconds)
        stats = await self._strategy.get_window_stats(item, self._digest(identifier))
        return item.amount - stats.remaining

    async def clear(
        self,
        identifier: str,
        max_events: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        """Reset the counter, e.g. after a successful login."""
        await self._strategy.clear(
            self._item(max_events, window_seconds), self._digest(identifier)
        )
