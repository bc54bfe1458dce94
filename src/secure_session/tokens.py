"""Cryptographically secure identifier and secret generation."""

from __future__ import annotations

import base64
import secrets

from .constants import DEFAULT_TOKEN_BYTES, MIN_TOKEN_BYTES
from .exceptions import EntropyUnavailableError


class TokenGenerator:
    """Produce URL-safe random tokens from the OS CSPRNG.

    Tokens are base64url encoded without padding, so they only contain
    ``A-Z a-z 0-9 - _`` and are safe inside cookies, filenames and keys.

    Example:
        >>> tokens = TokenGenerator()
        >>> len(tokens.generate(32))
        43
    """

    def __init__(
        self,
        session_id_bytes: int = DEFAULT_TOKEN_BYTES,
        csrf_secret_bytes: int = DEFAULT_TOKEN_BYTES,
    ) -> None:
        self._session_id_bytes = session_id_bytes
        self._csrf_secret_bytes = csrf_secret_bytes

    def generate(self, byte_length: int = DEFAULT_TOKEN_BYTES) -> str:
        """Return a token backed by ``byte_length`` random bytes.

        Raises:
            ValueError: If ``byte_length`` is below 16 bytes.
            EntropyUnavailableError: If the OS random source is missing.
        """
        if byte_length < MIN_TOKEN_BYTES:
            raise ValueError(f"byte_length must be at least {MIN_TOKEN_BYTES}")
        try:
            raw = secrets.token_bytes(byte_length)
        except NotImplementedError as exc:
            raise EntropyUnavailableError("No secure random source available") from exc
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    def session_id(self) -> str:
        return self.generate(self._session_id_bytes)

    def csrf_secret(self) -> str:
        return self.generate(self._csrf_secret_bytes)
