"""Tests for session ID sanitization."""

from __future__ import annotations

import logging

import pytest

from secure_session import TokenGenerator, sanitize_session_id


class TestSessionIdSanitization:
    """Test session ID sanitization for security."""

    def test_generated_session_id_passes(self) -> None:
        """Ids produced by TokenGenerator must round-trip through the sanitizer."""
        session_id = TokenGenerator().session_id()
        assert sanitize_session_id(session_id) == session_id

    def test_valid_session_id_22_chars(self) -> None:
        """Valid 22-char session ID (16 bytes, minimum) should pass."""
        session_id = "abcdefghij-_KLMNOPQRST"
        assert sanitize_session_id(session_id) == session_id

    def test_valid_session_id_128_chars(self) -> None:
        """Valid 128-char session ID (maximum) should pass."""
        session_id = "a" * 128
        assert sanitize_session_id(session_id) == session_id

    def test_surrounding_whitespace_is_stripped(self) -> None:
        session_id = "abcdefghij-_KLMNOPQRST"
        assert sanitize_session_id(f"  {session_id}\n") == session_id

    @pytest.mark.parametrize(
        "session_id",
        [
            None,
            "",
            "   ",
            "abc123",
            "a" * 129,
            "abc123' OR '1'='1' --xxxxxxxx",
            "abc123; rm -rf /xxxxxxxxxxxxxxxx",
            "../../../../etc/passwd/xxxxxxxx",
            "ratelimit.0123456789abcdef0123456789",
            "abcdefghij\x00klmnopqrstuvwxyz",
        ],
    )
    def test_rejected_values(self, session_id: str | None) -> None:
        """Malformed or hostile ids are rejected."""
        assert sanitize_session_id(session_id) is None

    def test_logs_warning_with_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        """Invalid session ID should log a warning with only a short prefix."""
        logger = logging.getLogger("test_sanitize")
        with caplog.at_level(logging.WARNING):
            result = sanitize_session_id("<script>alert(1)</script>", logger=logger)

        assert result is None
        assert "Invalid session ID format rejected" in caplog.text
        assert "alert(1)" not in caplog.text

    def test_no_logging_without_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            sanitize_session_id("bad!")
        assert caplog.text == ""
