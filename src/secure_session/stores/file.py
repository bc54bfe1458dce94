"""Filesystem session store: one file per session id.

Layout inside the configured directory:

- ``sess_<id>``: the serialized record, replaced via temp file + rename.
- ``sess_<id>.lock``: lock file holding the owner's random token.

The lock mirrors a ``SET NX PX`` lock: creation is exclusive, only the
owner token may release it, and a lock older than ``lock_timeout`` is
treated as abandoned by a crashed worker.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import tempfile
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

from ..config import SessionConfig
from ..constants import FILE_PREFIX, LOCK_FILE_SUFFIX, LOCK_RETRY_INTERVAL
from ..exceptions import SessionLockError
from ..record import SessionRecord
from ..serializer import decode_record, encode_record
from .base import SessionStore


class FileStore(SessionStore):
    """Session store writing PHP-serialized records to a directory.

    Usage:
        store = FileStore("/var/lib/app/sessions", config)
        manager = SessionManager(store, config)
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config, logger)
        self._directory = Path(directory)
        self._directory.mkdir(mode=0o700, parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, session_id: str) -> Path:
        return self._directory / f"{FILE_PREFIX}{session_id}"

    def _lock_path(self, session_id: str) -> Path:
        return self._directory / f"{FILE_PREFIX}{session_id}{LOCK_FILE_SUFFIX}"

    # -- blocking helpers, run in a worker thread ---------------------------

    @staticmethod
    def _read(path: Path) -> SessionRecord | None:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        return decode_record(raw)

    def _write(self, path: Path, payload: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _try_acquire(self, lock_path: Path, token: str) -> bool:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            self._break_stale(lock_path)
            return False
        with os.fdopen(fd, "w") as fh:
            fh.write(token)
        return True

    def _break_stale(self, lock_path: Path) -> None:
        try:
            age = time.time() - lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age <= self._config.lock_timeout:
            return
        # Only one waiter wins the rename; the claimed file is checked again
        # because a new owner may have taken the lock after the stat above.
        claimed = self._directory / f".stale-{secrets.token_hex(8)}"
        try:
            os.rename(lock_path, claimed)
        except FileNotFoundError:
            return
        try:
            if time.time() - claimed.stat().st_mtime <= self._config.lock_timeout:
                with suppress(FileExistsError):
                    os.link(claimed, lock_path)
                return
            if self._logger:
                self._logger.warning("Stale session lock removed: %s", lock_path.name[:13] + "...")
        finally:
            claimed.unlink(missing_ok=True)

    @staticmethod
    def _release(lock_path: Path, token: str) -> None:
        try:
            owner = lock_path.read_text()
        except FileNotFoundError:
            return
        if owner == token:
            lock_path.unlink(missing_ok=True)

    def _sweep(self, cutoff: int) -> int:
        removed = 0
        for path in self._directory.glob(f"{FILE_PREFIX}*"):
            if path.name.endswith(LOCK_FILE_SUFFIX):
                continue
            session_id = path.name[len(FILE_PREFIX):]
            lock_path = self._lock_path(session_id)
            token = secrets.token_hex(16)
            # A locked session is being written right now, so it is live.
            if not self._try_acquire(lock_path, token):
                continue
            try:
                try:
                    record = self._read(path)
                except ValueError:
                    continue
                if record is not None and record.last_activity < cutoff:
                    removed += self._unlink(path)
            finally:
                self._release(lock_path, token)
        return removed

    # -- SessionStore --------------------------------------------------------

    async def load(self, session_id: str) -> SessionRecord | None:
        return await self._guard(
            "load", session_id, asyncio.to_thread(self._read, self._path(session_id))
        )

    async def save(self, session_id: str, record: SessionRecord, ttl: int) -> None:
        payload = encode_record(record)
        await self._guard(
            "save",
            session_id,
            asyncio.to_thread(self._write, self._path(session_id), payload),
        )

    async def destroy(self, session_id: str) -> bool:
        return await self._guard(
            "destroy", session_id, asyncio.to_thread(self._unlink, self._path(session_id))
        )

    async def gc(self, cutoff: int) -> int:
        removed = await self._guard("gc", None, asyncio.to_thread(self._sweep, cutoff))
        if self._logger and removed:
            self._logger.info("Session GC removed %d files", removed)
        return removed

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        lock_path = self._lock_path(session_id)
        token = secrets.token_hex(16)
        acquired = False

        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < self._config.lock_timeout:
            acquired = await self._guard(
                "lock",
                session_id,
                asyncio.to_thread(self._try_acquire, lock_path, token),
            )
            if acquired:
                break
            await asyncio.sleep(LOCK_RETRY_INTERVAL)

        if not acquired:
            raise SessionLockError(session_id, self._config.lock_timeout)

        if self._logger:
            self._logger.debug("Session lock acquired: %s", session_id[:8] + "...")

        try:
            yield
        finally:
            await self._guard(
                "unlock", session_id, asyncio.to_thread(self._release, lock_path, token)
            )
