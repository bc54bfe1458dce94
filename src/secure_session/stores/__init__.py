"""Session store backends.

All backends implement :class:`SessionStore`; pick one by constructing
it and handing it to :class:`~secure_session.SessionManager`.
"""

from __future__ import annotations

from .base import SessionStore
from .database import DatabaseStore, metadata, session_locks_table, sessions_table
from .file import FileStore
from .memory import MemoryStore
from .redis import RedisStore

__all__ = [
    "SessionStore",
    "MemoryStore",
    "FileStore",
    "DatabaseStore",
    "RedisStore",
    "metadata",
    "sessions_table",
    "session_locks_table",
]
