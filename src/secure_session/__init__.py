"""Server-side sessions with CSRF protection and hijack detection.

Basic usage:
    from secure_session import ClientAttributes, FileStore, SessionConfig, SessionManager

    config = SessionConfig(lifetime=3600)
    store = FileStore("/var/lib/app/sessions", config)

    # One manager per request
    manager = SessionManager(store, config)
    await manager.start(cookie_value, ClientAttributes.from_headers(headers))
    manager.put("cart.laptop", 1)
    await manager.save()

With FastAPI/Starlette:
    from secure_session.contrib.starlette import SessionMiddleware

    app = FastAPI()
    app.add_middleware(SessionMiddleware, store=store, config=config)

    # Inside a route
    request.state.session.put("user_id", 42)
"""

from __future__ import annotations

from .config import SessionConfig
from .constants import (
    CSRF_TOKEN_KEY,
    DEFAULT_COOKIE_NAME,
    DEFAULT_CSRF_COOKIE_NAME,
    DEFAULT_LIFETIME,
    DEFAULT_LOCK_TIMEOUT,
    FLASH_KEY,
    MIN_TOKEN_BYTES,
    SESSION_ID_PATTERN,
)
from .context import get_current_session, require_current_session, set_current_session
from .cookies import CookieSpec, csrf_cookie, expired_cookie, session_cookie
from .csrf import CsrfGuard, extract_token
from .exceptions import (
    CsrfMismatch,
    EntropyUnavailableError,
    FingerprintMismatch,
    RateLimitExceeded,
    SecurityViolation,
    SessionContextError,
    SessionDestroyedError,
    SessionError,
    SessionLockError,
    SessionStateError,
    StoreUnavailable,
)
from .fingerprint import ClientAttributes, FingerprintGuard
from .flash import FlashStore
from .manager import SessionManager, SessionState
from .rate_limit import RateLimiter
from .record import SessionRecord
from .sanitize import sanitize_session_id
from .stores import DatabaseStore, FileStore, MemoryStore, RedisStore, SessionStore
from .tokens import TokenGenerator

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "SessionManager",
    "SessionState",
    "SessionConfig",
    "SessionRecord",
    "TokenGenerator",
    "FingerprintGuard",
    "ClientAttributes",
    "CsrfGuard",
    "FlashStore",
    "RateLimiter",
    # Stores
    "SessionStore",
    "MemoryStore",
    "FileStore",
    "DatabaseStore",
    "RedisStore",
    # Exceptions
    "SessionError",
    "StoreUnavailable",
    "SessionLockError",
    "SessionStateError",
    "SessionDestroyedError",
    "SessionContextError",
    "EntropyUnavailableError",
    "SecurityViolation",
    "CsrfMismatch",
    "FingerprintMismatch",
    "RateLimitExceeded",
    # Context helpers
    "set_current_session",
    "get_current_session",
    "require_current_session",
    # Cookies
    "CookieSpec",
    "session_cookie",
    "csrf_cookie",
    "expired_cookie",
    # Utility functions
    "sanitize_session_id",
    "extract_token",
    # Constants
    "CSRF_TOKEN_KEY",
    "FLASH_KEY",
    "DEFAULT_COOKIE_NAME",
    "DEFAULT_CSRF_COOKIE_NAME",
    "DEFAULT_LIFETIME",
    "DEFAULT_LOCK_TIMEOUT",
    "MIN_TOKEN_BYTES",
    "SESSION_ID_PATTERN",
]
