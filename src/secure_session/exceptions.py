"""Custom exceptions for secure session management.

Provides a hierarchy of exceptions for better error handling
in session operations.
"""

from __future__ import annotations


def _truncate(session_id: str) -> str:
    return session_id[:8] + "..." if len(session_id) > 8 else session_id


class SessionError(Exception):
    """Base exception for session-related errors.

    All session-specific exceptions inherit from this class,
    allowing callers to catch all session errors with a single except clause.
    """


class StoreUnavailable(SessionError):
    """Raised when the session backend cannot complete an operation.

    This is a retryable failure. It is never converted into an empty
    session: a caller that does not retry must fail the request.

    Attributes:
        operation: Store operation that failed (load, save, destroy, gc, lock).
        session_id: The affected session ID (truncated for security), if any.
    """

    retryable = True

    def __init__(
        self,
        operation: str,
        session_id: str | None = None,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.session_id = _truncate(session_id) if session_id else None
        if message is None:
            message = f"Session store unavailable during {operation}"
            if self.session_id:
                message += f" for {self.session_id}"
        super().__init__(message)


class SessionLockError(StoreUnavailable):
    """Raised when session lock cannot be acquired.

    This typically occurs when:
    - Another request holds the lock for too long
    - Lock timeout is reached
    - Backend connection issues during lock acquisition

    Attributes:
        session_id: The session ID that couldn't be locked (truncated for security).
        timeout: The timeout value that was exceeded.
    """

    def __init__(
        self,
        session_id: str,
        timeout: float,
        message: str | None = None,
    ) -> None:
        self.timeout = timeout
        if message is None:
            message = f"Could not acquire session lock for {_truncate(session_id)} within {timeout}s"
        super().__init__("lock", session_id, message)


class SessionStateError(SessionError):
    """Raised when the session lifecycle is used out of order.

    Examples are reading data before start(), calling start() twice,
    or mutating a session that was already saved.
    """


class SessionDestroyedError(SessionStateError):
    """Raised on any access to a session after destroy()."""

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "Session has been destroyed"
        super().__init__(message)


class SessionContextError(SessionError):
    """Raised when no session is bound to the current request context.

    This occurs when session operations are attempted without the
    middleware having set up a session for the request.
    """

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "No session in context - middleware not set up or session not started"
        super().__init__(message)


class EntropyUnavailableError(SessionError):
    """Raised when the operating system CSPRNG cannot be used.

    This is fatal. Identifiers are never produced from a weaker source.
    """


class SecurityViolation(SessionError):
    """Base class for security signals surfaced to the request handler.

    Messages are deliberately generic and never include token values.
    """


class CsrfMismatch(SecurityViolation):
    """Raised when a state-changing request carries no valid CSRF token."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "CSRF token mismatch")


class FingerprintMismatch(SecurityViolation):
    """Raised after a session was reset because its client fingerprint changed.

    The manager has already destroyed the old session and started a clean
    anonymous one; the request may proceed with it.

    Attributes:
        session_id: The replacement session ID (truncated for security).
    """

    def __init__(self, session_id: str, message: str | None = None) -> None:
        self.session_id = _truncate(session_id)
        super().__init__(message or "Session fingerprint mismatch")


class RateLimitExceeded(SecurityViolation):
    """Raised when an identifier exhausted its security failure budget.

    Attributes:
        retry_after: Seconds until the current window closes.
    """

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or "Too many security failures")
