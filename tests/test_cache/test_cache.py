"""Tests for the in-memory TTL cache and its persistent mirror."""

from __future__ import annotations

import pytest

from vopex.cache import MIRROR_NAMESPACE, Cache
from vopex.models import CacheConfig, StorageOptions
from vopex.storage import KeyValueStore


@pytest.fixture
def memory_cache(clock) -> Cache:
    return Cache(config=CacheConfig(default_ttl=60, max_entries=3), clock=clock)


@pytest.fixture
def mirrored_cache(store: KeyValueStore, clock) -> Cache:
    return Cache(store, CacheConfig(default_ttl=60), clock=clock)


class TestGetSet:
    def test_hit(self, memory_cache: Cache) -> None:
        memory_cache.set("a", {"x": 1})
        assert memory_cache.get("a") == {"x": 1}

    def test_miss_returns_none(self, memory_cache: Cache) -> None:
        assert memory_cache.get("nope") is None

    def test_fallback_on_miss(self, memory_cache: Cache) -> None:
        assert memory_cache.get("nope", fallback=lambda: "computed") == "computed"

    def test_fallback_not_called_on_hit(self, memory_cache: Cache) -> None:
        memory_cache.set("a", 1)
        assert memory_cache.get("a", fallback=lambda: pytest.fail("called")) == 1

    def test_namespaces(self, memory_cache: Cache) -> None:
        memory_cache.set("k", 1, namespace="users")
        assert memory_cache.get("k") is None
        assert memory_cache.get("k", namespace="users") == 1
        assert memory_cache.keys() == ["users:k"]

    def test_delete(self, memory_cache: Cache) -> None:
        memory_cache.set("k", 1)
        memory_cache.delete("k")
        assert memory_cache.get("k") is None


class TestExpiry:
    def test_default_ttl(self, memory_cache: Cache, clock) -> None:
        memory_cache.set("k", "v")
        clock.advance(59)
        assert memory_cache.get("k") == "v"
        clock.advance(1)
        assert memory_cache.get("k") is None
        assert memory_cache.keys() == []

    def test_explicit_ttl(self, memory_cache: Cache, clock) -> None:
        memory_cache.set("k", "v", ttl=5)
        clock.advance(6)
        assert memory_cache.get("k") is None

    def test_zero_ttl_means_default(self, memory_cache: Cache, clock) -> None:
        memory_cache.set("k", "v", ttl=0)
        clock.advance(30)
        assert memory_cache.get("k") == "v"


class TestEviction:
    def test_oldest_written_entries_go_first(self, memory_cache: Cache, clock) -> None:
        for key in ("a", "b", "c"):
            memory_cache.set(key, key)
            clock.advance(1)
        memory_cache.get("a")
        memory_cache.set("d", "d")
        assert memory_cache.keys() == ["b", "c", "d"]

    def test_configure_shrinks(self, memory_cache: Cache, clock) -> None:
        for key in ("a", "b", "c"):
            memory_cache.set(key, key)
            clock.advance(1)
        memory_cache.configure(max_entries=1)
        assert memory_cache.keys() == ["c"]
        assert memory_cache.config.default_ttl == 60

    def test_config_is_copied(self, clock) -> None:
        config = CacheConfig(max_entries=5)
        cache = Cache(config=config, clock=clock)
        cache.configure(max_entries=1)
        assert config.max_entries == 5


class TestClear:
    def test_clear_namespace(self, memory_cache: Cache) -> None:
        memory_cache.set("a", 1, namespace="x")
        memory_cache.set("b", 2, namespace="y")
        memory_cache.clear("x")
        assert memory_cache.keys() == ["y:b"]

    def test_clear_all(self, memory_cache: Cache) -> None:
        memory_cache.set("a", 1, namespace="x")
        memory_cache.set("b", 2)
        memory_cache.clear()
        assert memory_cache.keys() == []


class TestMirror:
    def test_written_encrypted_to_store(self, mirrored_cache: Cache, store: KeyValueStore) -> None:
        mirrored_cache.set("k", {"secret": "v"}, namespace="users")
        assert store.keys(MIRROR_NAMESPACE) == ["cache:users:k"]
        assert "secret" not in store._cache.get("cache:users:k")

    def test_fresh_process_restores_from_mirror(self, store: KeyValueStore, clock) -> None:
        Cache(store, CacheConfig(default_ttl=60), clock=clock).set("k", "v")
        fresh = Cache(store, CacheConfig(default_ttl=60), clock=clock)
        assert fresh.keys() == []
        assert fresh.get("k") == "v"
        assert fresh.keys() == ["k"]

    def test_stale_mirror_is_a_miss(self, store: KeyValueStore, clock) -> None:
        Cache(store, CacheConfig(default_ttl=60), clock=clock).set("k", "v")
        clock.advance(61)
        assert Cache(store, CacheConfig(default_ttl=60), clock=clock).get("k") is None

    def test_corrupt_mirror_is_a_miss(self, mirrored_cache: Cache, store: KeyValueStore) -> None:
        store.set_item("k", "not an entry", StorageOptions(namespace=MIRROR_NAMESPACE))
        assert mirrored_cache.get("k") is None

    def test_unserialisable_value_stays_in_memory(
        self, mirrored_cache: Cache, store: KeyValueStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        class Handle:
            pass

        handle = Handle()
        mirrored_cache.set("conn", handle, namespace="clients")
        mirrored_cache.set("plain", {"ok": True}, namespace="clients")

        assert mirrored_cache.get("conn", namespace="clients") is handle
        assert store.keys(MIRROR_NAMESPACE) == ["cache:clients:plain"]
        assert "Not mirroring clients:conn" in caplog.text

    def test_non_persistent_skips_store(self, store: KeyValueStore, clock) -> None:
        cache = Cache(store, CacheConfig(persistent=False), clock=clock)
        cache.set("k", "v")
        assert store.keys(MIRROR_NAMESPACE) == []

    def test_delete_removes_mirror(self, mirrored_cache: Cache, store: KeyValueStore) -> None:
        mirrored_cache.set("k", "v")
        mirrored_cache.delete("k")
        assert store.keys(MIRROR_NAMESPACE) == []

    def test_clear_namespace_in_mirror(self, mirrored_cache: Cache, store: KeyValueStore) -> None:
        mirrored_cache.set("a", 1, namespace="predictions")
        mirrored_cache.set("b", 2, namespace="responses")
        mirrored_cache.clear("predictions")
        assert store.keys(MIRROR_NAMESPACE) == ["cache:responses:b"]

    def test_clear_all_in_mirror_keeps_other_store_data(
        self, mirrored_cache: Cache, store: KeyValueStore
    ) -> None:
        store.set_item("user", "ada", StorageOptions(namespace="auth"))
        mirrored_cache.set("a", 1)
        mirrored_cache.clear()
        assert store.keys() == ["auth:user"]


class TestMemoize:
    def test_bare_decorator(self, memory_cache: Cache) -> None:
        calls: list[int] = []

        @memory_cache.memoize
        def square(n: int) -> int:
            calls.append(n)
            return n * n

        assert square(3) == 9
        assert square(3) == 9
        assert square(4) == 16
        assert calls == [3, 4]

    def test_cached_none_is_a_hit(self, memory_cache: Cache) -> None:
        calls: list[str] = []

        def lookup(name: str) -> None:
            calls.append(name)
            return None

        memo = memory_cache.memoize(lookup)
        memo("x")
        memo("x")
        assert calls == ["x"]

    def test_ttl_and_resolver(self, memory_cache: Cache, clock) -> None:
        calls: list[int] = []

        @memory_cache.memoize(ttl=5, resolver=lambda lead_id, **kw: f"lead:{lead_id}")
        def fetch(lead_id: int, verbose: bool = False) -> int:
            calls.append(lead_id)
            return lead_id

        fetch(1)
        fetch(1, verbose=True)
        clock.advance(6)
        fetch(1)
        assert calls == [1, 1]
        assert "lead:1" in memory_cache.keys()

    def test_kwargs_order_does_not_matter(self, memory_cache: Cache) -> None:
        calls: list[dict] = []

        @memory_cache.memoize
        def search(**filters: str) -> int:
            calls.append(filters)
            return len(calls)

        search(status="new", owner="ada")
        search(owner="ada", status="new")
        assert len(calls) == 1


class TestStats:
    def test_counts_and_size(self, memory_cache: Cache) -> None:
        assert memory_cache.stats() == {"total_entries": 0, "memory_usage": 0}
        memory_cache.set("a", "x" * 100)
        stats = memory_cache.stats()
        assert stats["total_entries"] == 1
        assert stats["memory_usage"] > 100
