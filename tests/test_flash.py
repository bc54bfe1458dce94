"""Tests for FlashStore one-hop semantics."""

from __future__ import annotations

import pytest

from secure_session import FLASH_KEY, MemoryStore


async def next_request(make_manager, session_id: str):
    manager = make_manager()
    await manager.start(session_id)
    return manager


class TestFlashLifecycle:
    @pytest.mark.asyncio
    async def test_readable_on_next_request_then_gone(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("msg", "hi")
        await first.save()

        second = await next_request(make_manager, session_id)
        assert second.flash.get("msg") == "hi"
        await second.save()

        third = await next_request(make_manager, session_id)
        assert third.flash.get("msg") is None
        assert third.flash.get("msg", "default") == "default"

    @pytest.mark.asyncio
    async def test_unread_flash_expires_after_one_hop(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("msg", "hi")
        await first.save()

        second = await next_request(make_manager, session_id)
        assert second.flash.has("msg")
        await second.save()

        third = await next_request(make_manager, session_id)
        assert not third.flash.has("msg")

    @pytest.mark.asyncio
    async def test_read_in_same_request_is_consumed(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("msg", "hi")
        assert first.flash.get("msg") == "hi"
        assert first.flash.get("msg") == "hi"
        await first.save()

        second = await next_request(make_manager, session_id)
        assert second.flash.get("msg") is None

    @pytest.mark.asyncio
    async def test_reflash_extends_one_more_hop(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("msg", "hi")
        await first.save()

        second = await next_request(make_manager, session_id)
        second.flash.reflash()
        await second.save()

        third = await next_request(make_manager, session_id)
        assert third.flash.get("msg") == "hi"

    @pytest.mark.asyncio
    async def test_keep_selected_keys(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("a", 1)
        first.flash.flash("b", 2)
        await first.save()

        second = await next_request(make_manager, session_id)
        second.flash.keep(["a", "missing"])
        await second.save()

        third = await next_request(make_manager, session_id)
        assert third.flash.keys() == ["a"]

    @pytest.mark.asyncio
    async def test_now_is_current_request_only(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.now("notice", "saved")
        assert first.flash.get("notice") == "saved"
        await first.save()

        second = await next_request(make_manager, session_id)
        assert not second.flash.has("notice")

    @pytest.mark.asyncio
    async def test_bucket_removed_when_empty(self, make_manager, store: MemoryStore) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.flash.flash("msg", "hi")
        await first.save()

        second = await next_request(make_manager, session_id)
        second.flash.get("msg")
        await second.save()

        record = await store.load(session_id)
        assert record is not None
        assert FLASH_KEY not in record.data

    @pytest.mark.asyncio
    async def test_flash_does_not_touch_regular_data(self, make_manager) -> None:
        first = make_manager()
        session_id = await first.start(None)
        first.put("msg", "regular")
        first.flash.flash("msg", "flashed")
        await first.save()

        second = await next_request(make_manager, session_id)
        assert second.get("msg") == "regular"
        assert second.flash.get("msg") == "flashed"
