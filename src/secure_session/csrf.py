"""CSRF secret issuance and double-submit validation.

The secret is generated once per session id and kept under the reserved
``_token`` key. It rotates only when the session id is regenerated
(login, logout), not per request, so several open tabs keep working.
The same value may also be sent in a readable cookie: a script on the
legitimate origin echoes it back in a header, which a cross-origin page
cannot do because it cannot read the cookie.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .constants import CSRF_TOKEN_KEY, DEFAULT_CSRF_FIELD, DEFAULT_CSRF_HEADERS
from .exceptions import CsrfMismatch
from .tokens import TokenGenerator

if TYPE_CHECKING:
    from .manager import SessionManager


def extract_token(
    form: Mapping[str, Any] | None,
    headers: Mapping[str, str] | None,
    field_name: str = DEFAULT_CSRF_FIELD,
    header_names: Iterable[str] = DEFAULT_CSRF_HEADERS,
) -> str | None:
    """Return the submitted token from a form field or header.

    The form field wins; headers are checked in order. ``headers`` must
    be case-insensitive if header names may arrive in another case.
    """
    if form is not None:
        value = form.get(field_name)
        if isinstance(value, str) and value:
            return value
    if headers is not None:
        for name in header_names:
            value = headers.get(name)
            if value:
                return value
    return None


class CsrfGuard:
    """Issue and validate the CSRF secret bound to a session."""

    def __init__(
        self,
        manager: SessionManager,
        tokens: TokenGenerator,
        logger: logging.Logger | None = None,
    ) -> None:
        self._manager = manager
        self._tokens = tokens
        self._logger = logger

    def current(self) -> str | None:
        """Return the stored secret without issuing one."""
        secret = self._manager.get(CSRF_TOKEN_KEY)
        return secret if isinstance(secret, str) and secret else None

    def token(self) -> str:
        """Return the session's secret, generating it on first use."""
        secret = self.current()
        if secret is None:
            secret = self._tokens.csrf_secret()
            self._manager.put(CSRF_TOKEN_KEY, secret)
        return secret

    def validate(self, submitted: str | None) -> bool:
        """Constant-time check of ``submitted`` against the stored secret.

        Empty submissions and sessions without a secret are rejected.
        """
        if not submitted or not isinstance(submitted, str):
            return False
        expected = self.current()
        if expected is None:
            return False
        return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))

    def verify(self, submitted: str | None) -> None:
        """Like :meth:`validate` but raise on failure.

        Raises:
            CsrfMismatch: With a generic message; token values are never
                logged or attached.
        """
        if not self.validate(submitted):
            if self._logger:
                self._logger.warning(
                    "CSRF token mismatch for session %s (submitted=%s)",
                    (self._manager.id or "")[:8] + "...",
                    "present" if submitted else "missing",
                )
            raise CsrfMismatch()
