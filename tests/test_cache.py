"""Tests for the snapshot cache and lineage locks."""

import threading

from gccmem.config.schema import GccConfig
from gccmem.memory.cache import SnapshotCache
from gccmem.memory.locks import LineageLocks
from gccmem.memory.store import GccStore


class TestSnapshotCache:
    """Test SnapshotCache."""

    def test_put_and_get_copy(self):
        cache = SnapshotCache()
        snapshot = {"languages": ["Go"]}

        assert cache.put("skills", "main", "h1", snapshot, cache.generation("skills", "main"))
        snapshot["languages"].append("Rust")

        head_hash, cached = cache.get("skills", "main")
        assert head_hash == "h1"
        assert cached == {"languages": ["Go"]}

        cached["languages"].append("Zig")
        assert cache.get("skills", "main")[1] == {"languages": ["Go"]}

    def test_stale_generation_is_rejected(self):
        cache = SnapshotCache()
        generation = cache.generation("skills", "main")

        cache.invalidate("skills", "main")

        assert cache.put("skills", "main", "old", {"a": ["b"]}, generation) is False
        assert cache.get("skills", "main") is None

    def test_invalidate_is_per_branch(self):
        cache = SnapshotCache()
        cache.put("skills", "main", "h1", {}, 0)
        cache.put("skills", "dev", "h2", {}, 0)
        cache.put("tasks", "main", "h3", {}, 0)

        cache.invalidate("skills", "main")

        assert cache.get("skills", "main") is None
        assert cache.get("skills", "dev") is not None
        assert cache.get("tasks", "main") is not None

    def test_lru_bound(self):
        cache = SnapshotCache(max_entries=2)
        cache.put("c", "a", "h", {}, 0)
        cache.put("c", "b", "h", {}, 0)
        cache.get("c", "a")
        cache.put("c", "c", "h", {}, 0)

        assert len(cache) == 2
        assert cache.get("c", "b") is None
        assert cache.get("c", "a") is not None

    def test_disabled(self):
        cache = SnapshotCache(max_entries=0)
        assert cache.put("c", "a", "h", {}, 0) is False
        assert len(cache) == 0

    def test_hit_and_miss_counters(self):
        cache = SnapshotCache()
        cache.get("c", "a")
        cache.put("c", "a", "h", {}, 0)
        cache.get("c", "a")

        assert (cache.hits, cache.misses) == (1, 1)


class TestStoreCaching:
    """Test how the store uses its cache."""

    def test_second_read_is_served_from_cache(self, store):
        store.commit("tasks", {"activeTasks": ["a"]}, "V1", "HIGH")

        store.get_head_snapshot("tasks")
        store.get_head_snapshot("tasks")

        assert store.cache.hits == 1

    def test_commit_invalidates(self, store):
        store.commit("tasks", {"activeTasks": ["a"]}, "V1", "HIGH")
        store.get_head_snapshot("tasks")

        store.commit("tasks", {"activeTasks": ["a", "b"]}, "V2", "HIGH")

        assert store.cache.get("tasks", "main") is None
        assert store.get_head_snapshot("tasks") == {"activeTasks": ["a", "b"]}

    def test_delete_invalidates(self, store):
        store.commit("tasks", {"activeTasks": ["a"]}, "V1", "HIGH", branch_name="dev")
        store.get_head_snapshot("tasks", "dev")

        store.delete_branch("tasks", "dev")

        assert store.get_head_snapshot("tasks", "dev") is None

    def test_store_without_cache(self, db_path):
        config = GccConfig(db_path=str(db_path), cache_max_entries=0)
        with GccStore.open(config) as store:
            store.commit("tasks", {"activeTasks": ["a"]}, "V1", "HIGH")

            assert store.get_head_snapshot("tasks") == {"activeTasks": ["a"]}
            assert len(store.cache) == 0


class TestLineageLocks:
    """Test LineageLocks."""

    def test_same_key_same_lock(self):
        locks = LineageLocks()
        assert locks.get("c", "main") is locks.get("c", "main")
        assert locks.get("c", "main") is not locks.get("c", "dev")
        assert locks.get("c", "main") is not locks.get("d", "main")

    def test_other_lineage_does_not_block(self):
        locks = LineageLocks()
        acquired = threading.Event()

        def other_branch():
            with locks.hold("c", "dev"):
                acquired.set()

        with locks.hold("c", "main"):
            thread = threading.Thread(target=other_branch)
            thread.start()
            assert acquired.wait(timeout=5)
            thread.join()

    def test_hold_many_is_reentrant(self):
        locks = LineageLocks()
        with locks.hold_many("c", "main", "dev", "main"):
            with locks.hold("c", "dev"):
                pass
