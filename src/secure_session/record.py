"""The persisted shape of one session."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SessionRecord:
    """Everything a store keeps for one session id.

    Attributes:
        data: Application data, nested mappings addressed by dotted keys.
        fingerprint: Client fingerprint hash, set once per session.
        created_at: Unix timestamp of session creation.
        last_activity: Unix timestamp of the last load or write.
        user_id: Authenticated user, mirrored from data for admin queries.
        ip_address: Client address seen on the last write.
        user_agent: Client user agent seen on the last write.
    """

    data: dict[str, Any] = field(default_factory=dict)
    fingerprint: str | None = None
    created_at: int = 0
    last_activity: int = 0
    user_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    def is_expired(self, now: int, lifetime: int) -> bool:
        return self.last_activity + lifetime < now

    def copy(self) -> SessionRecord:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SessionRecord:
        data = raw.get("data")
        return cls(
            data=data if isinstance(data, dict) else {},
            fingerprint=raw.get("fingerprint"),
            created_at=int(raw.get("created_at") or 0),
            last_activity=int(raw.get("last_activity") or 0),
            user_id=raw.get("user_id"),
            ip_address=raw.get("ip_address"),
            user_agent=raw.get("user_agent"),
        )
