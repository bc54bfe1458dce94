"""Session ID sanitization and validation.

Provides security validation for incoming session IDs to prevent
injection attacks and path tricks against the file backend.
"""

from __future__ import annotations

import logging

from .constants import SESSION_ID_PATTERN


def sanitize_session_id(
    session_id: str | None,
    logger: logging.Logger | None = None,
) -> str | None:
    """Sanitize and validate a session ID for security.

    Args:
        session_id: Raw session ID from cookie or other source.
        logger: Optional logger for security warnings.

    Returns:
        Validated session ID or None if invalid.

    Security considerations:
        - Prevents injection attacks by validating format
        - Limits length to prevent DoS via large cookies
        - Only allows the base64url alphabet (no path separators or dots)
        - Rejects empty strings, whitespace, and null bytes

    Example:
        >>> sanitize_session_id("Zm9vYmFyYmF6cXV4cXV1eGZvbw")
        'Zm9vYmFyYmF6cXV4cXV1eGZvbw'
        >>> sanitize_session_id("../../etc/passwd")
        None
    """
    if not session_id:
        return None

    # Strip whitespace (security: prevent bypass with padded IDs)
    session_id = session_id.strip()

    if not SESSION_ID_PATTERN.match(session_id):
        if logger:
            logger.warning(
                "Invalid session ID format rejected: prefix=%s, length=%d",
                session_id[:8] if len(session_id) >= 8 else session_id,
                len(session_id),
            )
        return None

    return session_id
