"""SQL session store built on SQLAlchemy's async engine.

One row per session in ``sessions``; ``user_id`` and ``last_activity``
are indexed for administrative queries and garbage collection. Per-id
locks are rows in ``session_locks``: inserting the row acquires the
lock (the primary key makes it exclusive), deleting it with the owner
token releases it, and rows past ``expires_at`` are reclaimed.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import (
    Column,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import SessionConfig
from ..constants import LOCK_RETRY_INTERVAL
from ..exceptions import SessionLockError
from ..record import SessionRecord
from ..serializer import decode_record, encode_record
from .base import SessionStore

metadata = MetaData()

sessions_table = Table(
    "sessions",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("user_id", String(255), nullable=True, index=True),
    Column("ip_address", String(45), nullable=True),
    Column("user_agent", Text, nullable=True),
    Column("payload", LargeBinary, nullable=False),
    Column("last_activity", Integer, nullable=False, index=True),
)

session_locks_table = Table(
    "session_locks",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("token", String(64), nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)


class DatabaseStore(SessionStore):
    """Session store backed by any SQLAlchemy async dialect.

    Usage:
        engine = create_async_engine("postgresql+asyncpg://...")
        store = DatabaseStore(engine, config)
        await store.create_schema()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config, logger)
        self._engine = engine

    async def create_schema(self) -> None:
        """Create the sessions and session_locks tables if missing."""
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def _fetch(self, session_id: str) -> SessionRecord | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(sessions_table.c.payload).where(sessions_table.c.id == session_id)
            )
            payload = result.scalar_one_or_none()
        return decode_record(payload) if payload is not None else None

    async def _upsert(self, session_id: str, record: SessionRecord) -> None:
        values = {
            "user_id": record.user_id,
            "ip_address": record.ip_address,
            "user_agent": record.user_agent,
            "payload": encode_record(record),
            "last_activity": record.last_activity,
        }
        async with self._engine.begin() as conn:
            result = await conn.execute(
                update(sessions_table)
                .where(sessions_table.c.id == session_id)
                .values(**values)
            )
            if result.rowcount == 0:
                await conn.execute(insert(sessions_table).values(id=session_id, **values))

    async def _delete(self, *criteria) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(delete(sessions_table).where(*criteria))
        return result.rowcount

    async def _sweep(self, cutoff: int) -> int:
        async with self._engine.begin() as conn:
            # The predicate is evaluated at delete time, so a row whose
            # last_activity was just refreshed no longer matches.
            result = await conn.execute(
                delete(sessions_table).where(sessions_table.c.last_activity < cutoff)
            )
            await conn.execute(
                delete(session_locks_table).where(
                    session_locks_table.c.expires_at < time.time()
                )
            )
        return result.rowcount

    async def _find_by_user(self, user_id: str) -> list[str]:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(sessions_table.c.id)
                .where(sessions_table.c.user_id == user_id)
                .order_by(sessions_table.c.last_activity.desc())
            )
            return list(result.scalars())

    async def _try_acquire(self, session_id: str, token: str) -> bool:
        now = time.time()
        async with self._engine.begin() as conn:
            await conn.execute(
                delete(session_locks_table).where(
                    session_locks_table.c.id == session_id,
                    session_locks_table.c.expires_at < now,
                )
            )
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    insert(session_locks_table).values(
                        id=session_id,
                        token=token,
                        expires_at=now + self._config.lock_timeout,
                    )
                )
        except IntegrityError:
            return False
        return True

    async def _release(self, session_id: str, token: str) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                delete(session_locks_table).where(
                    session_locks_table.c.id == session_id,
                    session_locks_table.c.token == token,
                )
            )

    # -- SessionStore --------------------------------------------------------

    async def load(self, session_id: str) -> SessionRecord | None:
        return await self._guard(
            "load", session_id, self._fetch(session_id), (SQLAlchemyError,)
        )

    async def save(self, session_id: str, record: SessionRecord, ttl: int) -> None:
        await self._guard(
            "save", session_id, self._upsert(session_id, record), (SQLAlchemyError,)
        )

    async def destroy(self, session_id: str) -> bool:
        removed = await self._guard(
            "destroy",
            session_id,
            self._delete(sessions_table.c.id == session_id),
            (SQLAlchemyError,),
        )
        return removed > 0

    async def gc(self, cutoff: int) -> int:
        removed = await self._guard("gc", None, self._sweep(cutoff), (SQLAlchemyError,))
        if self._logger and removed:
            self._logger.info("Session GC removed %d rows", removed)
        return removed

    async def find_by_user(self, user_id: str | int) -> list[str]:
        """Return ids of all sessions owned by ``user_id``, most recent first."""
        return await self._guard(
            "find_by_user", None, self._find_by_user(str(user_id)), (SQLAlchemyError,)
        )

    async def destroy_for_user(
        self,
        user_id: str | int,
        except_id: str | None = None,
    ) -> int:
        """Delete every session of ``user_id``, optionally keeping one.

        Used to log a user out of all other devices after a password change.
        """
        criteria = [sessions_table.c.user_id == str(user_id)]
        if except_id is not None:
            criteria.append(sessions_table.c.id != except_id)
        removed = await self._guard(
            "destroy_for_user", None, self._delete(*criteria), (SQLAlchemyError,)
        )
        if self._logger:
            self._logger.info("Destroyed %d sessions for user %s", removed, user_id)
        return removed

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        token = secrets.token_hex(16)
        acquired = False

        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < self._config.lock_timeout:
            acquired = await self._guard(
                "lock",
                session_id,
                self._try_acquire(session_id, token),
                (SQLAlchemyError,),
            )
            if acquired:
                break
            await asyncio.sleep(LOCK_RETRY_INTERVAL)

        if not acquired:
            raise SessionLockError(session_id, self._config.lock_timeout)

        try:
            yield
        finally:
            await self._guard(
                "unlock",
                session_id,
                self._release(session_id, token),
                (SQLAlchemyError,),
            )
