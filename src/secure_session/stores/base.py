"""Session store interface.

Every backend provides the same guarantees:

- ``save`` replaces the full record atomically; readers never see a
  partially written record.
- ``lock`` gives mutual exclusion per session id for the duration of a
  read-modify-write. ``save`` does not take the lock itself, so callers
  can load and save inside one locked interval.
- Every call is bounded by ``io_timeout`` and backend failures surface
  as :class:`StoreUnavailable`, never as a missing session.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from contextlib import AbstractAsyncContextManager
from typing import TypeVar

from ..config import SessionConfig
from ..exceptions import StoreUnavailable
from ..record import SessionRecord

T = TypeVar("T")


class SessionStore(ABC):
    """Base class for durable session persistence."""

    def __init__(
        self,
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or SessionConfig()
        self._logger = logger

    @abstractmethod
    async def load(self, session_id: str) -> SessionRecord | None:
        """Return the stored record, or None when no record exists."""

    @abstractmethod
    async def save(self, session_id: str, record: SessionRecord, ttl: int) -> None:
        """Atomically replace the record stored under ``session_id``.

        Args:
            session_id: Session identifier.
            record: Complete record to store.
            ttl: Lifetime in seconds; backends with native expiry use it.
        """

    @abstractmethod
    async def destroy(self, session_id: str) -> bool:
        """Delete the record. Returns True if one existed."""

    @abstractmethod
    async def gc(self, cutoff: int) -> int:
        """Remove records whose last_activity is strictly before ``cutoff``.

        The cutoff is re-checked at delete time so a record refreshed
        by a concurrent request survives.

        Returns:
            Number of records removed.
        """

    @abstractmethod
    def lock(self, session_id: str) -> AbstractAsyncContextManager[None]:
        """Async context manager holding the per-id lock.

        Raises:
            SessionLockError: If the lock is not acquired within lock_timeout.
        """

    async def _guard(
        self,
        operation: str,
        session_id: str | None,
        awaitable: Awaitable[T],
        errors: tuple[type[BaseException], ...] = (),
    ) -> T:
        """Await a backend call under io_timeout, translating failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._config.io_timeout)
        except StoreUnavailable:
            raise
        except (asyncio.TimeoutError, OSError, ValueError, *errors) as exc:
            if self._logger:
                self._logger.error(
                    "Session store %s failed: %s",
                    operation,
                    type(exc).__name__,
                )
            raise StoreUnavailable(operation, session_id) from exc

