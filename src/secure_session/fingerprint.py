"""Client fingerprinting for session hijack detection."""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class ClientAttributes:
    """Request attributes the transport layer hands to the session layer.

    ``ip_address`` is recorded on the session but never fingerprinted:
    mobile and proxied clients change address mid-session.
    """

    user_agent: str = ""
    accept_language: str = ""
    accept_encoding: str = ""
    ip_address: str | None = None

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        ip_address: str | None = None,
    ) -> ClientAttributes:
        """Build attributes from a case-insensitive header mapping."""
        return cls(
            user_agent=headers.get("user-agent", ""),
            accept_language=headers.get("accept-language", ""),
            accept_encoding=headers.get("accept-encoding", ""),
            ip_address=ip_address,
        )


class FingerprintGuard:
    """Derive and compare client fingerprints.

    A fingerprint is the SHA-256 of the user agent, accept-language and
    accept-encoding headers. It is stored once when the session is
    created and compared on every later request.
    """

    def fingerprint(self, client: ClientAttributes) -> str:
        material = "\x1f".join(
            (client.user_agent, client.accept_language, client.accept_encoding)
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def matches(self, stored: str, client: ClientAttributes) -> bool:
        return hmac.compare_digest(stored, self.fingerprint(client))
