"""Context variable helpers for the current request's session.

Uses Python's contextvars to hand the per-request SessionManager to code
deep in the call stack without a process-wide singleton.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

from .exceptions import SessionContextError

if TYPE_CHECKING:
    from .manager import SessionManager

# ContextVar for current request's session manager (DI pattern)
_current_session: ContextVar[SessionManager | None] = ContextVar("session", default=None)


def set_current_session(session: SessionManager | None) -> None:
    """Bind the session for the current request (called by middleware).

    Args:
        session: The request's SessionManager, or None to clear.
    """
    _current_session.set(session)


def get_current_session() -> SessionManager | None:
    """Get the session bound to the current request.

    Returns:
        The current SessionManager, or None if not set.
    """
    return _current_session.get()


def require_current_session() -> SessionManager:
    """Get the session bound to the current request.

    Raises:
        SessionContextError: If no session is bound.
    """
    session = _current_session.get()
    if session is None:
        raise SessionContextError()
    return session
