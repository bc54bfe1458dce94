"""Test fixtures for py-secure-session package."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest

from secure_session import (
    ClientAttributes,
    MemoryStore,
    SessionConfig,
    SessionManager,
    set_current_session,
)


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> SessionConfig:
    """Create a SessionConfig for testing (GC lottery off)."""
    return SessionConfig(
        lifetime=3600,
        lock_timeout=1.0,
        io_timeout=2.0,
        touch_interval=60,
        gc_probability=0.0,
    )


@pytest.fixture
def store(config: SessionConfig) -> MemoryStore:
    return MemoryStore(config)


@pytest.fixture
def client() -> ClientAttributes:
    return ClientAttributes(
        user_agent="Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
        accept_language="en-US,en;q=0.5",
        accept_encoding="gzip, deflate, br",
        ip_address="203.0.113.7",
    )


@pytest.fixture
def make_manager(store: MemoryStore, config: SessionConfig, clock: FakeClock):
    """Factory for per-request managers sharing one store and clock."""

    def factory(**kwargs) -> SessionManager:
        kwargs.setdefault("clock", clock)
        return SessionManager(store, config, **kwargs)

    return factory


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis client for testing."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    # Mock the register_script method to return a callable
    mock_script = AsyncMock(return_value=1)
    redis.register_script = lambda script: mock_script
    return redis


@pytest.fixture(autouse=True)
def reset_session_context() -> Generator[None, None, None]:
    """Make sure no test leaks a bound session into another."""
    set_current_session(None)
    yield
    set_current_session(None)
