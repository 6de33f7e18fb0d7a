"""Tests for the key-value stores and the cache-aside accessor."""

from __future__ import annotations

import json

import pytest

from weit.caching import FileStore, MemoryStore, cached, make_store


class Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class Producer:
    def __init__(self, value) -> None:
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


# ===========================================================================
# MemoryStore
# ===========================================================================


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_put_and_get(self):
        store = MemoryStore()
        await store.put("a", "1")
        assert await store.get("a") == "1"
        assert "a" in store
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_missing_key(self):
        assert await MemoryStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self):
        clock = Clock()
        store = MemoryStore(timer=clock)
        await store.put("a", "1", ttl=10)

        clock.now += 9
        assert await store.get("a") == "1"

        clock.now += 2
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_entry_without_ttl_does_not_expire(self):
        clock = Clock()
        store = MemoryStore(timer=clock)
        await store.put("a", "1")

        clock.now += 10 ** 9
        assert await store.get("a") == "1"

    @pytest.mark.asyncio
    async def test_ttl_is_per_entry(self):
        clock = Clock()
        store = MemoryStore(timer=clock)
        await store.put("short", "1", ttl=5)
        await store.put("long", "2", ttl=500)

        clock.now += 10
        assert await store.get("short") is None
        assert await store.get("long") == "2"

    @pytest.mark.asyncio
    async def test_delete_and_clear(self):
        store = MemoryStore()
        await store.put("a", "1")
        await store.put("b", "2")

        await store.delete("a")
        await store.delete("missing")
        assert await store.get("a") is None

        await store.clear()
        assert len(store) == 0


# ===========================================================================
# FileStore
# ===========================================================================


class TestFileStore:
    @pytest.mark.asyncio
    async def test_round_trip_with_awkward_key(self, tmp_path):
        store = FileStore(tmp_path)
        await store.put("list:bttv:1234", "[]")
        assert await store.get("list:bttv:1234") == "[]"
        assert [p.name for p in tmp_path.glob("*.json")] == ["list%3Abttv%3A1234.json"]

    @pytest.mark.asyncio
    async def test_expired_file_is_removed(self, tmp_path):
        clock = Clock()
        store = FileStore(tmp_path, timer=clock)
        await store.put("a", "1", ttl=10)

        clock.now += 11
        assert await store.get("a") is None
        assert list(tmp_path.glob("*.json")) == []

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_a_miss(self, tmp_path):
        store = FileStore(tmp_path)
        await store.put("a", "1")
        (tmp_path / "a.json").write_text("{not json", encoding="utf-8")
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path):
        store = FileStore(tmp_path)
        await store.put("a", "1")
        await store.put("b", "2")
        await store.clear()
        assert list(tmp_path.glob("*.json")) == []


class TestMakeStore:
    def test_memory(self):
        assert isinstance(make_store("memory"), MemoryStore)

    def test_file(self, tmp_path):
        store = make_store("file", tmp_path)
        assert isinstance(store, FileStore)
        assert store.directory == tmp_path

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            make_store("redis")


# ===========================================================================
# cached
# ===========================================================================


class TestCached:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, store):
        produce = Producer({"a": [1, 2]})

        assert await cached(store, "k", produce) == {"a": [1, 2]}
        assert await cached(store, "k", produce) == {"a": [1, 2]}
        assert produce.calls == 1
        assert json.loads(await store.get("k")) == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self, store):
        produce = Producer(None)

        assert await cached(store, "k", produce) is None
        assert await cached(store, "k", produce) is None
        assert produce.calls == 2
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_empty_values_are_cached(self, store):
        produce = Producer([])

        assert await cached(store, "k", produce) == []
        assert await cached(store, "k", produce) == []
        assert produce.calls == 1

    @pytest.mark.asyncio
    async def test_force_refresh_skips_read_but_writes(self, store):
        await store.put("k", json.dumps("old"))
        produce = Producer("new")

        assert await cached(store, "k", produce, force_refresh=True) == "new"
        assert produce.calls == 1
        assert json.loads(await store.get("k")) == "new"

    @pytest.mark.asyncio
    async def test_text_values(self, store):
        produce = Producer(42)

        assert await cached(store, "count", produce, type="text") == 42
        assert await cached(store, "count", produce, type="text") == "42"
        assert produce.calls == 1

    @pytest.mark.asyncio
    async def test_ttl_is_passed_to_store(self):
        clock = Clock()
        store = MemoryStore(timer=clock)
        produce = Producer("v")

        await cached(store, "k", produce, ttl=60)
        clock.now += 61
        await cached(store, "k", produce, ttl=60)
        assert produce.calls == 2

    @pytest.mark.asyncio
    async def test_unknown_type(self, store):
        with pytest.raises(ValueError):
            await cached(store, "k", Producer("v"), type="yaml")

    @pytest.mark.asyncio
    async def test_producer_errors_propagate(self, store):
        async def fail():
            raise RuntimeError("upstream exploded")

        with pytest.raises(RuntimeError):
            await cached(store, "k", fail)
        assert await store.get("k") is None
