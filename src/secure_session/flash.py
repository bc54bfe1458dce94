"""Single-read flash data stored inside the session.

Entries live under the reserved ``_flash`` key as
``{key: {"value": ..., "state": "fresh" | "consumed"}}``. On every
save, consumed entries are dropped and fresh ones become consumed, so a
value flashed now is readable on the next request and gone after it.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .constants import FLASH_CONSUMED, FLASH_FRESH, FLASH_KEY

if TYPE_CHECKING:
    from .manager import SessionManager


class FlashStore:
    """Flash messages layered on a :class:`SessionManager`.

    Usage:
        manager.flash.flash("status", "Profile updated")
        # next request
        manager.flash.get("status")  # "Profile updated", then gone
    """

    def __init__(self, manager: SessionManager) -> None:
        self._manager = manager

    def _bucket(self) -> dict[str, dict[str, Any]]:
        bucket = self._manager.get(FLASH_KEY)
        if not isinstance(bucket, dict):
            return {}
        return {key: dict(entry) for key, entry in bucket.items() if isinstance(entry, dict)}

    def _store(self, bucket: dict[str, dict[str, Any]]) -> None:
        if bucket:
            self._manager.put(FLASH_KEY, bucket)
        else:
            self._manager.forget(FLASH_KEY)

    def flash(self, key: str, value: Any) -> None:
        """Store ``value`` for this and the next request."""
        bucket = self._bucket()
        bucket[key] = {"value": value, "state": FLASH_FRESH}
        self._store(bucket)

    def now(self, key: str, value: Any) -> None:
        """Store ``value`` for the current request only."""
        bucket = self._bucket()
        bucket[key] = {"value": value, "state": FLASH_CONSUMED}
        self._store(bucket)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a flashed value and mark it for removal on save."""
        bucket = self._bucket()
        entry = bucket.get(key)
        if entry is None:
            return default
        if entry.get("state") != FLASH_CONSUMED:
            entry["state"] = FLASH_CONSUMED
            self._store(bucket)
        return entry.get("value")

    def has(self, key: str) -> bool:
        return key in self._bucket()

    def keys(self) -> list[str]:
        return list(self._bucket())

    def keep(self, keys: Iterable[str]) -> None:
        """Give the named entries one more request to live."""
        bucket = self._bucket()
        changed = False
        for key in keys:
            if key in bucket:
                bucket[key]["state"] = FLASH_FRESH
                changed = True
        if changed:
            self._store(bucket)

    def reflash(self) -> None:
        """Give every entry one more request to live."""
        self.keep(self.keys())

    def age(self) -> bool:
        """Drop consumed entries and demote fresh ones.

        Called by :meth:`SessionManager.save`. Returns True if the bucket
        changed.
        """
        bucket = self._bucket()
        if not bucket:
            return False
        survivors = {
            key: {"value": entry.get("value"), "state": FLASH_CONSUMED}
            for key, entry in bucket.items()
            if entry.get("state") == FLASH_FRESH
        }
        self._store(survivors)
        return True
