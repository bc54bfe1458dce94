"""Redis session store with PHP redis handler compatible locking.

Lock key format and acquisition match PHP's redis session handler:
``{prefix}{id}_LOCK`` acquired with ``SET NX PX`` and released by a Lua
script that checks the owner token, so Python and PHP workers can
safely share sessions.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..config import SessionConfig
from ..constants import LOCK_RETRY_INTERVAL, LOCK_SUFFIX, RELEASE_LOCK_SCRIPT, SESSION_PREFIX
from ..exceptions import SessionLockError
from ..record import SessionRecord
from ..serializer import decode_record, encode_record
from .base import SessionStore


class RedisStore(SessionStore):
    """Async Redis-backed session store.

    Expiry is native (``SET ... EX ttl``), so :meth:`gc` has nothing to
    sweep and returns 0.

    Usage:
        redis = Redis.from_url("redis://localhost:6379")
        store = RedisStore(redis, config)
    """

    def __init__(
        self,
        redis: Redis[bytes],
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
        prefix: str = SESSION_PREFIX,
    ) -> None:
        super().__init__(config, logger)
        if not prefix:
            raise ValueError("prefix cannot be empty")
        self._redis = redis
        self._prefix = prefix
        self._release_lock_script = self._redis.register_script(RELEASE_LOCK_SCRIPT)

    def _session_key(self, session_id: str) -> str:
        """Build Redis key for session data."""
        return f"{self._prefix}{session_id}"

    def _lock_key(self, session_id: str) -> str:
        """Build Redis key for session lock (PHP compatible format)."""
        return f"{self._session_key(session_id)}{LOCK_SUFFIX}"

    async def _fetch(self, session_id: str) -> SessionRecord | None:
        raw = await self._redis.get(self._session_key(session_id))
        return decode_record(raw) if raw else None

    async def load(self, session_id: str) -> SessionRecord | None:
        return await self._guard("load", session_id, self._fetch(session_id), (RedisError,))

    async def save(self, session_id: str, record: SessionRecord, ttl: int) -> None:
        await self._guard(
            "save",
            session_id,
            self._redis.set(self._session_key(session_id), encode_record(record), ex=ttl),
            (RedisError,),
        )

    async def destroy(self, session_id: str) -> bool:
        result = await self._guard(
            "destroy",
            session_id,
            self._redis.delete(self._session_key(session_id)),
            (RedisError,),
        )
        return result > 0

    async def gc(self, cutoff: int) -> int:
        return 0

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        lock_key = self._lock_key(session_id)
        token = secrets.token_hex(16)
        acquired = False

        # Acquire lock (matching PHP's SET NX PX pattern)
        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < self._config.lock_timeout:
            result = await self._guard(
                "lock",
                session_id,
                self._redis.set(
                    lock_key,
                    token,
                    nx=True,
                    px=int(self._config.lock_timeout * 1000),
                ),
                (RedisError,),
            )
            if result:
                acquired = True
                break
            await asyncio.sleep(LOCK_RETRY_INTERVAL)

        if not acquired:
            raise SessionLockError(session_id, self._config.lock_timeout)

        if self._logger:
            self._logger.debug("Session lock acquired: %s", session_id[:8] + "...")

        try:
            yield
        finally:
            # Release lock using Lua script (same as PHP)
            await self._guard(
                "unlock",
                session_id,
                self._release_lock_script(keys=[lock_key], args=[token]),
                (RedisError,),
            )
            if self._logger:
                self._logger.debug("Session lock released: %s", session_id[:8] + "...")
