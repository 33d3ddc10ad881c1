"""Tests for InMemoryKeyValueStore."""

import asyncio

import pytest

from meterly.adapters.kv_store.in_memory import InMemoryKeyValueStore
from meterly.core.exceptions import ConditionFailedError
from meterly.core.protocols.kv_store import ConditionalPut


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


class TestBasicOperations:
    @pytest.mark.asyncio
    async def test_put_get(self, store):
        await store.put("t", "k", {"a": 1})

        assert await store.get("t", "k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_returned_items_are_copies(self, store):
        await store.put("t", "k", {"nested": {"a": 1}})

        item = await store.get("t", "k")
        item["nested"]["a"] = 2

        assert (await store.get("t", "k"))["nested"]["a"] == 1

    @pytest.mark.asyncio
    async def test_put_if_absent(self, store):
        assert await store.put_if_absent("t", "k", {"v": 1}) is True
        assert await store.put_if_absent("t", "k", {"v": 2}) is False
        assert await store.get("t", "k") == {"v": 1}


class TestConditionalWrites:
    @pytest.mark.asyncio
    async def test_update_with_matching_condition(self, store):
        await store.put("t", "k", {"status": "draft", "n": 1})

        updated = await store.update("t", "k", {"status": "finalized"}, condition={"status": "draft"})

        assert updated == {"status": "finalized", "n": 1}

    @pytest.mark.asyncio
    async def test_update_with_failing_condition(self, store):
        await store.put("t", "k", {"status": "finalized"})

        with pytest.raises(ConditionFailedError):
            await store.update("t", "k", {"status": "finalized"}, condition={"status": "draft"})

    @pytest.mark.asyncio
    async def test_conditional_update_of_missing_item_fails(self, store):
        with pytest.raises(ConditionFailedError):
            await store.update("t", "missing", {"a": 1}, condition={"a": 0})

    @pytest.mark.asyncio
    async def test_unconditional_update_creates(self, store):
        assert await store.update("t", "new", {"a": 1}) == {"a": 1}

    @pytest.mark.asyncio
    async def test_conditional_delete(self, store):
        await store.put("t", "k", {"owner": "a"})

        assert await store.delete("t", "k", condition={"owner": "b"}) is False
        assert await store.delete("t", "k", condition={"owner": "a"}) is True
        assert await store.get("t", "k") is None


class TestAtomicIncrement:
    @pytest.mark.asyncio
    async def test_missing_counts_as_zero(self, store):
        assert await store.atomic_increment("t", "k", "n") == 1
        assert await store.atomic_increment("t", "k", "n", delta=4) == 5

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_exact(self, store):
        await asyncio.gather(*[store.atomic_increment("t", "k", "n") for _ in range(100)])

        assert (await store.get("t", "k"))["n"] == 100

    @pytest.mark.asyncio
    async def test_marker_makes_increment_once_only(self, store):
        marker = ConditionalPut("ledger", "consumer#e1", {"eventId": "e1"})

        assert await store.atomic_increment("t", "k", "n", marker=marker) == 1
        assert await store.atomic_increment("t", "k", "n", marker=marker) is None
        assert (await store.get("t", "k"))["n"] == 1
        assert await store.get("ledger", "consumer#e1") == {"eventId": "e1"}


class TestScanPage:
    @pytest.mark.asyncio
    async def test_pages_in_key_order(self, store):
        for key in ["c", "a", "e", "b", "d"]:
            await store.put("t", key, {"key": key})

        first = await store.scan_page("t", limit=2)
        second = await store.scan_page("t", cursor=first.next_cursor, limit=2)
        third = await store.scan_page("t", cursor=second.next_cursor, limit=2)

        assert [i["key"] for i in first.items] == ["a", "b"]
        assert [i["key"] for i in second.items] == ["c", "d"]
        assert [i["key"] for i in third.items] == ["e"]
        assert third.next_cursor is None

    @pytest.mark.asyncio
    async def test_exact_page_has_no_next_cursor(self, store):
        for key in ["a", "b"]:
            await store.put("t", key, {"key": key})

        page = await store.scan_page("t", limit=2)

        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_scan_returns_everything(self, store):
        for key in ["a", "b", "c"]:
            await store.put("t", key, {"key": key})

        assert len(await store.scan("t")) == 3
