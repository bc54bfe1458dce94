"""Constants for secure session management.

Defaults follow common server-side session conventions (cookie names,
CSRF field/header names, lifetimes) so the library can sit in front of
existing PHP or Laravel style clients without reconfiguration.
"""

from __future__ import annotations

import re
from typing import Final

# Minimum entropy for any generated identifier or secret (128 bits)
MIN_TOKEN_BYTES: Final[int] = 16

# Default entropy for session ids and CSRF secrets (256 bits)
DEFAULT_TOKEN_BYTES: Final[int] = 32

# Largest session id that still fits SESSION_ID_PATTERN (96 bytes -> 128 chars)
MAX_SESSION_ID_BYTES: Final[int] = 96

# Session ids are base64url without padding: 16 bytes -> 22 chars, 96 bytes -> 128 chars.
# Anything outside this alphabet is rejected before it reaches a store.
SESSION_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]{22,128}$")

# Reserved data keys
CSRF_TOKEN_KEY: Final[str] = "_token"
FLASH_KEY: Final[str] = "_flash"

# Flash entry states
FLASH_FRESH: Final[str] = "fresh"
FLASH_CONSUMED: Final[str] = "consumed"

# Cookie defaults
DEFAULT_COOKIE_NAME: Final[str] = "SESSID"
DEFAULT_CSRF_COOKIE_NAME: Final[str] = "XSRF-TOKEN"
SAMESITE_VALUES: Final[frozenset[str]] = frozenset({"lax", "strict", "none"})

# CSRF transport
DEFAULT_CSRF_FIELD: Final[str] = "_token"
DEFAULT_CSRF_HEADERS: Final[tuple[str, ...]] = ("X-CSRF-TOKEN", "X-XSRF-TOKEN")
SAFE_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})

# Default session lifetime in seconds (2 hours)
DEFAULT_LIFETIME: Final[int] = 7200

# Default lock timeout in seconds
DEFAULT_LOCK_TIMEOUT: Final[float] = 10.0

# Default bound on a single store I/O call in seconds
DEFAULT_IO_TIMEOUT: Final[float] = 5.0

# Unmodified sessions write back their last_activity at most this often
DEFAULT_TOUCH_INTERVAL: Final[int] = 60

# Lock retry interval in seconds
LOCK_RETRY_INTERVAL: Final[float] = 0.05

# Probability that a request triggers a garbage collection sweep
DEFAULT_GC_PROBABILITY: Final[float] = 0.01

# Security failure throttling: 5 events per 5 minutes
DEFAULT_RATE_LIMIT_MAX_EVENTS: Final[int] = 5
DEFAULT_RATE_LIMIT_WINDOW: Final[int] = 300

# Namespace of rate limit keys in the limits storage
RATE_LIMIT_NAMESPACE: Final[str] = "secure_session"

# Store key prefixes
SESSION_PREFIX: Final[str] = "SESSION:"
LOCK_SUFFIX: Final[str] = "_LOCK"
FILE_PREFIX: Final[str] = "sess_"
LOCK_FILE_SUFFIX: Final[str] = ".lock"

# Lua script for safe lock release:
# - Only releases if token matches (prevents releasing other process's lock)
# - Uses atomic EVAL to prevent race conditions
RELEASE_LOCK_SCRIPT: Final[str] = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""
