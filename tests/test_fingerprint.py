"""Tests for FingerprintGuard and hijack handling."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from secure_session import (
    ClientAttributes,
    FingerprintGuard,
    FingerprintMismatch,
    MemoryStore,
    SessionState,
)


class TestFingerprintGuard:
    def test_stable_for_same_client(self, client: ClientAttributes) -> None:
        guard = FingerprintGuard()
        assert guard.fingerprint(client) == guard.fingerprint(replace(client))
        assert len(guard.fingerprint(client)) == 64

    def test_ignores_ip_address(self, client: ClientAttributes) -> None:
        guard = FingerprintGuard()
        moved = replace(client, ip_address="198.51.100.23")
        assert guard.fingerprint(moved) == guard.fingerprint(client)

    @pytest.mark.parametrize("field", ["user_agent", "accept_language", "accept_encoding"])
    def test_changes_with_stable_headers(self, client: ClientAttributes, field: str) -> None:
        guard = FingerprintGuard()
        changed = replace(client, **{field: "something else"})
        assert guard.fingerprint(changed) != guard.fingerprint(client)

    def test_fields_do_not_run_together(self) -> None:
        guard = FingerprintGuard()
        a = ClientAttributes(user_agent="ab", accept_language="c")
        b = ClientAttributes(user_agent="a", accept_language="bc")
        assert guard.fingerprint(a) != guard.fingerprint(b)

    def test_matches(self, client: ClientAttributes) -> None:
        guard = FingerprintGuard()
        stored = guard.fingerprint(client)
        assert guard.matches(stored, client)
        assert not guard.matches(stored, replace(client, user_agent="curl/8.0"))

    def test_from_headers(self) -> None:
        headers = {
            "user-agent": "Mozilla/5.0",
            "accept-language": "de-DE",
            "accept-encoding": "gzip",
        }
        client = ClientAttributes.from_headers(headers, "203.0.113.7")
        assert client.user_agent == "Mozilla/5.0"
        assert client.accept_language == "de-DE"
        assert client.accept_encoding == "gzip"
        assert client.ip_address == "203.0.113.7"


class TestHijackReset:
    """A changed fingerprint destroys the session and starts a clean one."""

    @pytest.mark.asyncio
    async def test_mismatch_resets_session(
        self,
        make_manager,
        store: MemoryStore,
        client: ClientAttributes,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        first = make_manager()
        session_id = await first.start(None, client)
        first.put("user_id", 42)
        await first.save()
        h1 = first.fingerprint

        thief = replace(client, user_agent="python-requests/2.32")
        second = make_manager(logger=logging.getLogger("test_hijack"))
        with caplog.at_level(logging.WARNING):
            with pytest.raises(FingerprintMismatch) as exc_info:
                await second.start(session_id, thief)

        assert second.fingerprint != h1
        assert second.id != session_id
        assert second.get("user_id") is None
        assert second.is_new
        assert second.state is SessionState.MUTATED
        assert await store.load(session_id) is None
        assert exc_info.value.session_id == second.id[:8] + "..."
        assert "fingerprint mismatch" in caplog.text
        assert session_id not in caplog.text

    @pytest.mark.asyncio
    async def test_reset_session_is_usable(
        self, make_manager, store: MemoryStore, client: ClientAttributes
    ) -> None:
        first = make_manager()
        session_id = await first.start(None, client)
        await first.save()

        thief = replace(client, user_agent="python-requests/2.32")
        second = make_manager()
        with pytest.raises(FingerprintMismatch):
            await second.start(session_id, thief)
        second.put("visited", True)
        await second.save()

        assert second.id is not None
        record = await store.load(second.id)
        assert record is not None
        assert record.data == {"visited": True}
