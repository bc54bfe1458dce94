"""Configuration dataclass for session management.

Provides a configuration object to replace global settings access,
making the session manager more portable and testable.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_COOKIE_NAME,
    DEFAULT_CSRF_COOKIE_NAME,
    DEFAULT_CSRF_FIELD,
    DEFAULT_CSRF_HEADERS,
    DEFAULT_GC_PROBABILITY,
    DEFAULT_IO_TIMEOUT,
    DEFAULT_LIFETIME,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_RATE_LIMIT_MAX_EVENTS,
    DEFAULT_RATE_LIMIT_WINDOW,
    DEFAULT_TOKEN_BYTES,
    DEFAULT_TOUCH_INTERVAL,
    MAX_SESSION_ID_BYTES,
    MIN_TOKEN_BYTES,
    SAMESITE_VALUES,
)


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for secure session management.

    Attributes:
        lifetime: Idle lifetime of a session in seconds.
        lock_timeout: Per-id lock acquisition timeout in seconds.
        io_timeout: Upper bound for a single store call in seconds.
        touch_interval: Minimum age of last_activity before an unmodified
            session is written back just to refresh it.
        session_id_bytes: Random bytes behind each session id.
        csrf_secret_bytes: Random bytes behind each CSRF secret.
        cookie_name: Name of the session cookie.
        csrf_cookie_name: Name of the readable double-submit cookie.
        cookie_path: Path attribute for both cookies.
        cookie_domain: Domain attribute for both cookies.
        cookie_samesite: SameSite policy ("lax", "strict" or "none").
        cookie_secure: Force the Secure attribute on or off. None follows
            the request scheme.
        csrf_cookie_enabled: Whether to emit the double-submit cookie.
        csrf_field_name: Form field carrying the CSRF token.
        csrf_header_names: Headers checked for the CSRF token, in order.
        fingerprint_enabled: Whether to bind sessions to a client fingerprint.
        gc_probability: Chance that a request triggers a GC sweep.
        user_id_key: Data key mirrored into the store's user_id column.
        rate_limit_max_events: Security failures allowed per window.
        rate_limit_window: Security failure window in seconds.

    Example:
        >>> config = SessionConfig(
        ...     lifetime=3600,  # 1 hour
        ...     cookie_samesite="strict",
        ... )
        >>> manager = SessionManager(store, config)
    """

    lifetime: int = DEFAULT_LIFETIME
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    io_timeout: float = DEFAULT_IO_TIMEOUT
    touch_interval: int = DEFAULT_TOUCH_INTERVAL
    session_id_bytes: int = DEFAULT_TOKEN_BYTES
    csrf_secret_bytes: int = DEFAULT_TOKEN_BYTES
    cookie_name: str = DEFAULT_COOKIE_NAME
    csrf_cookie_name: str = DEFAULT_CSRF_COOKIE_NAME
    cookie_path: str = "/"
    cookie_domain: str | None = None
    cookie_samesite: str = "lax"
    cookie_secure: bool | None = None
    csrf_cookie_enabled: bool = True
    csrf_field_name: str = DEFAULT_CSRF_FIELD
    csrf_header_names: tuple[str, ...] = DEFAULT_CSRF_HEADERS
    fingerprint_enabled: bool = True
    gc_probability: float = DEFAULT_GC_PROBABILITY
    user_id_key: str = "user_id"
    rate_limit_max_events: int = DEFAULT_RATE_LIMIT_MAX_EVENTS
    rate_limit_window: int = DEFAULT_RATE_LIMIT_WINDOW

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.lifetime <= 0:
            raise ValueError("lifetime must be positive")
        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")
        if self.io_timeout <= 0:
            raise ValueError("io_timeout must be positive")
        if self.touch_interval < 0:
            raise ValueError("touch_interval cannot be negative")
        if self.session_id_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"session_id_bytes must be at least {MIN_TOKEN_BYTES}")
        if self.session_id_bytes > MAX_SESSION_ID_BYTES:
            raise ValueError(f"session_id_bytes must be at most {MAX_SESSION_ID_BYTES}")
        if self.csrf_secret_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"csrf_secret_bytes must be at least {MIN_TOKEN_BYTES}")
        if not self.cookie_name:
            raise ValueError("cookie_name cannot be empty")
        if self.cookie_samesite not in SAMESITE_VALUES:
            raise ValueError("cookie_samesite must be one of: lax, strict, none")
        if self.cookie_samesite == "none" and self.cookie_secure is not True:
            raise ValueError("cookie_samesite='none' requires cookie_secure=True")
        if not 0.0 <= self.gc_probability <= 1.0:
            raise ValueError("gc_probability must be between 0 and 1")
        if self.rate_limit_max_events <= 0:
            raise ValueError("rate_limit_max_events must be positive")
        if self.rate_limit_window <= 0:
            raise ValueError("rate_limit_window must be positive")
