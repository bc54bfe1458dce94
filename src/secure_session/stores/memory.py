"""In-process session store for tests and single-worker development."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ..config import SessionConfig
from ..exceptions import SessionLockError
from ..record import SessionRecord
from .base import SessionStore


class _LockEntry:
    """asyncio.Lock plus a count of coroutines using it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class MemoryStore(SessionStore):
    """Dict-backed store. Nothing survives a process restart.

    Records are copied on the way in and out, so a manager never shares
    a mutable mapping with another request.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config, logger)
        self._records: dict[str, SessionRecord] = {}
        self._locks: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    async def load(self, session_id: str) -> SessionRecord | None:
        record = self._records.get(session_id)
        return record.copy() if record is not None else None

    async def save(self, session_id: str, record: SessionRecord, ttl: int) -> None:
        self._records[session_id] = record.copy()

    async def destroy(self, session_id: str) -> bool:
        return self._records.pop(session_id, None) is not None

    async def gc(self, cutoff: int) -> int:
        expired = [
            session_id
            for session_id, record in self._records.items()
            if record.last_activity < cutoff
        ]
        for session_id in expired:
            del self._records[session_id]
        if self._logger and expired:
            self._logger.info("Session GC removed %d records", len(expired))
        return len(expired)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(session_id, _LockEntry())
        entry.users += 1
        try:
            try:
                await asyncio.wait_for(
                    entry.lock.acquire(), timeout=self._config.lock_timeout
                )
            except asyncio.TimeoutError as exc:
                raise SessionLockError(session_id, self._config.lock_timeout) from exc
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(session_id, None)
