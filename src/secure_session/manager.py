"""Per-request session lifecycle.

One :class:`SessionManager` is constructed for each request and passed
down the handling pipeline; it is never shared between requests. The
lifecycle is::

    UNSTARTED --start()--> STARTED --put()/forget()--> MUTATED
    STARTED | MUTATED --save()--> SAVED
    any started state --destroy()--> DESTROYED

SAVED and DESTROYED are terminal.
"""

from __future__ import annotations

import copy
import enum
import logging
import random
import time
from collections.abc import Callable
from typing import Any

from .config import SessionConfig
from .constants import CSRF_TOKEN_KEY
from .csrf import CsrfGuard
from .exceptions import (
    FingerprintMismatch,
    SessionDestroyedError,
    SessionStateError,
)
from .fingerprint import ClientAttributes, FingerprintGuard
from .flash import FlashStore
from .paths import data_forget, data_get, data_has, data_set
from .record import SessionRecord
from .sanitize import sanitize_session_id
from .stores.base import SessionStore
from .tokens import TokenGenerator


class SessionState(enum.Enum):
    UNSTARTED = "unstarted"
    STARTED = "started"
    MUTATED = "mutated"
    SAVED = "saved"
    DESTROYED = "destroyed"


def _short(session_id: str | None) -> str:
    return (session_id or "")[:8] + "..."


class SessionManager:
    """Owns one session for the duration of one request.

    Usage:
        manager = SessionManager(store, config)
        await manager.start(cookie_value, ClientAttributes.from_headers(headers))

        manager.put("cart.laptop", 1)
        manager.flash.flash("status", "Added to cart")

        # On login, always rotate the id to block session fixation
        await manager.regenerate()

        await manager.save()
    """

    def __init__(
        self,
        store: SessionStore,
        config: SessionConfig | None = None,
        logger: logging.Logger | None = None,
        tokens: TokenGenerator | None = None,
        fingerprints: FingerprintGuard | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the session manager.

        Args:
            store: Backend persisting session records.
            config: Session configuration. Uses defaults if None.
            logger: Optional logger for debugging and security signals.
            tokens: Token source. Defaults to one sized from config.
            fingerprints: Fingerprint strategy. Defaults to FingerprintGuard().
            clock: Returns the current Unix time.
        """
        self._store = store
        self._config = config or SessionConfig()
        self._logger = logger
        self._tokens = tokens or TokenGenerator(
            self._config.session_id_bytes, self._config.csrf_secret_bytes
        )
        self._fingerprints = fingerprints or FingerprintGuard()
        self._clock = clock

        self._state = SessionState.UNSTARTED
        self._id: str | None = None
        self._record = SessionRecord()
        self._is_new = False
        self._touch_due = False

        self.flash = FlashStore(self)
        self.csrf = CsrfGuard(self, self._tokens, logger)

    # -- introspection -------------------------------------------------------

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def is_started(self) -> bool:
        return self._state in (SessionState.STARTED, SessionState.MUTATED, SessionState.SAVED)

    @property
    def is_destroyed(self) -> bool:
        return self._state is SessionState.DESTROYED

    @property
    def is_new(self) -> bool:
        """True when start() created the session instead of adopting one."""
        return self._is_new

    @property
    def dirty(self) -> bool:
        return self._state is SessionState.MUTATED

    @property
    def fingerprint(self) -> str | None:
        return self._record.fingerprint

    @property
    def created_at(self) -> int:
        return self._record.created_at

    @property
    def last_activity(self) -> int:
        return self._record.last_activity

    def _now(self) -> int:
        return int(self._clock())

    def _require_started(self) -> None:
        if self._state is SessionState.DESTROYED:
            raise SessionDestroyedError()
        if self._state is SessionState.UNSTARTED:
            raise SessionStateError("Session has not been started")

    def _require_writable(self) -> None:
        self._require_started()
        if self._state is SessionState.SAVED:
            raise SessionStateError("Session has already been saved")

    def _mark_dirty(self) -> None:
        self._state = SessionState.MUTATED

    # -- lifecycle -----------------------------------------------------------

    async def start(
        self,
        incoming_id: str | None = None,
        client: ClientAttributes | None = None,
    ) -> str:
        """Adopt the session named by ``incoming_id`` or create a new one.

        A missing, unknown or expired id always yields a freshly
        generated id; a client-chosen id is never adopted.

        Args:
            incoming_id: Id from the session cookie, if any. Ids outside
                the session id format are ignored.
            client: Request attributes for fingerprinting.

        Returns:
            The id of the active session.

        Raises:
            SessionStateError: If called more than once.
            StoreUnavailable: If the store cannot be read.
            FingerprintMismatch: If the adopted session belonged to another
                client. The old session is already destroyed and a clean
                anonymous one is active when this is raised.
        """
        if self._state is not SessionState.UNSTARTED:
            raise SessionStateError("Session has already been started")

        now = self._now()
        incoming_id = sanitize_session_id(incoming_id, logger=self._logger)
        record: SessionRecord | None = None
        if incoming_id:
            record = await self._store.load(incoming_id)
            if record is not None and record.is_expired(now, self._config.lifetime):
                if self._logger:
                    self._logger.debug("Session expired: %s", _short(incoming_id))
                record = None

        if record is None:
            self._begin_fresh(now, client)
            return self._id  # type: ignore[return-value]

        self._id = incoming_id
        self._record = record
        self._state = SessionState.STARTED
        self._touch_due = now - record.last_activity >= self._config.touch_interval
        record.last_activity = now
        if client is not None:
            record.ip_address = client.ip_address
            record.user_agent = client.user_agent or None

        if self._config.fingerprint_enabled and client is not None:
            if record.fingerprint is None:
                record.fingerprint = self._fingerprints.fingerprint(client)
                self._mark_dirty()
            elif not self._fingerprints.matches(record.fingerprint, client):
                await self._reset_hijacked(now, client)

        if self._logger:
            self._logger.debug("Session started: %s", _short(self._id))
        return self._id  # type: ignore[return-value]

    def _begin_fresh(self, now: int, client: ClientAttributes | None) -> None:
        self._id = self._tokens.session_id()
        self._record = SessionRecord(created_at=now, last_activity=now)
        if client is not None:
            self._record.ip_address = client.ip_address
            self._record.user_agent = client.user_agent or None
            if self._config.fingerprint_enabled:
                self._record.fingerprint = self._fingerprints.fingerprint(client)
        self._is_new = True
        self._mark_dirty()
        if self._logger:
            self._logger.debug("Session created: %s", _short(self._id))

    async def _reset_hijacked(self, now: int, client: ClientAttributes) -> None:
        old_id = self._id
        assert old_id is not None
        async with self._store.lock(old_id):
            await self._store.destroy(old_id)
        self._begin_fresh(now, client)
        if self._logger:
            self._logger.warning(
                "Session fingerprint mismatch, reset %s -> %s",
                _short(old_id),
                _short(self._id),
            )
        raise FingerprintMismatch(self._id)  # type: ignore[arg-type]

    async def regenerate(self) -> str:
        """Move the session to a new id and make the old id unresolvable.

        Data is carried over except the CSRF secret, which is reissued
        on next use. Call this on every privilege change (login, role
        switch) to block session fixation.

        Returns:
            The new session id.
        """
        self._require_writable()
        old_id = self._id
        assert old_id is not None
        new_id = self._tokens.session_id()

        self._record.data.pop(CSRF_TOKEN_KEY, None)
        self._record.last_activity = self._now()
        self._sync_user_id()

        # The old record is gone before the new id is handed out, so the
        # two ids never both resolve to live copies.
        async with self._store.lock(old_id):
            await self._store.destroy(old_id)
            await self._store.save(new_id, self._record, self._config.lifetime)

        self._id = new_id
        self._is_new = False
        self._touch_due = False
        self._state = SessionState.STARTED
        if self._logger:
            self._logger.info(
                "Session regenerated: %s -> %s", _short(old_id), _short(new_id)
            )
        return new_id

    async def invalidate(self) -> str:
        """Clear all data and regenerate the id (logout)."""
        self.flush()
        return await self.regenerate()

    async def save(self) -> None:
        """Persist the session if anything changed.

        Flash data is aged first. Unmodified sessions are only written
        when their stored last_activity is older than touch_interval.

        Raises:
            SessionDestroyedError: If the session was destroyed.
            StoreUnavailable: If the store rejects the write.
        """
        self._require_started()
        if self._state is SessionState.SAVED:
            return

        self.flash.age()
        if self._state is SessionState.MUTATED or self._touch_due:
            assert self._id is not None
            self._record.last_activity = self._now()
            self._sync_user_id()
            async with self._store.lock(self._id):
                await self._store.save(self._id, self._record, self._config.lifetime)
            if self._logger:
                self._logger.debug("Session saved: %s", _short(self._id))

        self._touch_due = False
        self._state = SessionState.SAVED

    async def destroy(self) -> None:
        """Delete the session from the store.

        Every later data access raises SessionDestroyedError.
        """
        if self._state is SessionState.DESTROYED:
            return
        self._require_started()
        assert self._id is not None
        async with self._store.lock(self._id):
            await self._store.destroy(self._id)
        self._record = SessionRecord()
        self._state = SessionState.DESTROYED
        if self._logger:
            self._logger.info("Session destroyed: %s", _short(self._id))

    async def collect_garbage(self, force: bool = False) -> int:
        """Run a GC sweep, on a gc_probability lottery unless ``force``.

        Returns:
            Number of expired records removed.
        """
        if not force and random.random() >= self._config.gc_probability:
            return 0
        cutoff = self._now() - self._config.lifetime
        removed = await self._store.gc(cutoff)
        if self._logger:
            self._logger.debug("Session GC swept %d records", removed)
        return removed

    def _sync_user_id(self) -> None:
        user_id = data_get(self._record.data, self._config.user_id_key)
        self._record.user_id = str(user_id) if user_id is not None else None

    # -- data access ---------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dotted ``key`` or ``default``."""
        self._require_started()
        return data_get(self._record.data, key, default)

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` at dotted ``key``, creating nested mappings."""
        self._require_writable()
        data_set(self._record.data, key, value)
        self._mark_dirty()

    def has(self, key: str) -> bool:
        self._require_started()
        return data_has(self._record.data, key)

    def forget(self, key: str) -> bool:
        self._require_writable()
        removed = data_forget(self._record.data, key)
        if removed:
            self._mark_dirty()
        return removed

    def pull(self, key: str, default: Any = None) -> Any:
        """Return the value at ``key`` and remove it."""
        value = self.get(key, default)
        self.forget(key)
        return value

    def flush(self) -> None:
        """Remove all data."""
        self._require_writable()
        self._record.data.clear()
        self._mark_dirty()

    def all(self) -> dict[str, Any]:
        """Return a deep copy of all session data."""
        self._require_started()
        return copy.deepcopy(self._record.data)
