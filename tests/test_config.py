"""Tests for SessionConfig dataclass."""

from __future__ import annotations

import pytest

from secure_session import SessionConfig, TokenGenerator, sanitize_session_id
from secure_session.constants import DEFAULT_LIFETIME, DEFAULT_LOCK_TIMEOUT


class TestSessionConfig:
    """Tests for SessionConfig dataclass."""

    def test_default_values(self) -> None:
        """Test that default values are set correctly."""
        config = SessionConfig()

        assert config.lifetime == DEFAULT_LIFETIME
        assert config.lock_timeout == DEFAULT_LOCK_TIMEOUT
        assert config.cookie_name == "SESSID"
        assert config.csrf_cookie_name == "XSRF-TOKEN"
        assert config.cookie_samesite == "lax"
        assert config.cookie_path == "/"
        assert config.cookie_secure is None
        assert config.csrf_field_name == "_token"
        assert config.csrf_header_names == ("X-CSRF-TOKEN", "X-XSRF-TOKEN")
        assert config.session_id_bytes == 32
        assert config.fingerprint_enabled is True

    def test_custom_values(self) -> None:
        """Test that custom values can be set."""
        config = SessionConfig(
            lifetime=600,
            lock_timeout=5.0,
            cookie_name="app_session",
            cookie_samesite="strict",
            cookie_secure=True,
            rate_limit_max_events=10,
        )

        assert config.lifetime == 600
        assert config.lock_timeout == 5.0
        assert config.cookie_name == "app_session"
        assert config.cookie_samesite == "strict"
        assert config.cookie_secure is True
        assert config.rate_limit_max_events == 10

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"lifetime": 0}, "lifetime must be positive"),
            ({"lock_timeout": -1.0}, "lock_timeout must be positive"),
            ({"io_timeout": 0}, "io_timeout must be positive"),
            ({"touch_interval": -1}, "touch_interval cannot be negative"),
            ({"session_id_bytes": 8}, "session_id_bytes must be at least 16"),
            ({"session_id_bytes": 97}, "session_id_bytes must be at most 96"),
            ({"csrf_secret_bytes": 15}, "csrf_secret_bytes must be at least 16"),
            ({"cookie_name": ""}, "cookie_name cannot be empty"),
            ({"cookie_samesite": "sometimes"}, "cookie_samesite must be one of"),
            ({"gc_probability": 1.5}, "gc_probability must be between 0 and 1"),
            ({"rate_limit_window": 0}, "rate_limit_window must be positive"),
        ],
    )
    def test_invalid_values(self, kwargs: dict[str, object], message: str) -> None:
        """Test that invalid values raise ValueError."""
        with pytest.raises(ValueError, match=message):
            SessionConfig(**kwargs)  # type: ignore[arg-type]

    def test_samesite_none_requires_secure(self) -> None:
        """SameSite=None cookies are rejected by browsers unless Secure."""
        with pytest.raises(ValueError, match="requires cookie_secure=True"):
            SessionConfig(cookie_samesite="none")

        config = SessionConfig(cookie_samesite="none", cookie_secure=True)
        assert config.cookie_samesite == "none"

    def test_config_is_frozen(self) -> None:
        """Test that config is immutable (frozen)."""
        config = SessionConfig()

        with pytest.raises(AttributeError):
            config.lifetime = 100  # type: ignore[misc]

    @pytest.mark.parametrize("size", [16, 96])
    def test_session_id_sizes_stay_resumable(self, size: int) -> None:
        """Every accepted id size yields ids the cookie sanitizer lets through."""
        config = SessionConfig(session_id_bytes=size)
        session_id = TokenGenerator(config.session_id_bytes).session_id()

        assert sanitize_session_id(session_id) == session_id
