"""Read cache for materialized head snapshots."""

import threading
from collections import OrderedDict

from gccmem.memory.fields import Snapshot, copy_snapshot


CacheKey = tuple[str, str]


class SnapshotCache:
    """
    LRU cache of head snapshots keyed by (category, branch).

    Snapshots are copied on the way in and on the way out, so callers never
    share storage with the cache. Every key carries a generation counter
    that `invalidate` bumps; `put` is ignored when the generation it was
    given is stale, which keeps a slow reader from re-inserting a snapshot
    that a concurrent write already replaced.

    Attributes:
        max_entries: Maximum cached branches (0 disables caching).
    """

    def __init__(self, max_entries: int = 256):
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, tuple[str, Snapshot]] = OrderedDict()
        self._generations: dict[CacheKey, int] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def generation(self, category: str, branch_name: str) -> int:
        """Current generation of a key; pass it back to `put`."""
        with self._lock:
            return self._generations.get((category, branch_name), 0)

    def get(self, category: str, branch_name: str) -> tuple[str, Snapshot] | None:
        """Return (head hash, snapshot copy) if cached."""
        key = (category, branch_name)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            head_hash, snapshot = entry
        return head_hash, copy_snapshot(snapshot)

    def put(
        self,
        category: str,
        branch_name: str,
        head_hash: str,
        snapshot: Snapshot,
        generation: int,
    ) -> bool:
        """Cache a snapshot read at `generation`. Returns False if it was stale."""
        if self.max_entries <= 0:
            return False

        key = (category, branch_name)
        stored = copy_snapshot(snapshot)
        with self._lock:
            if self._generations.get(key, 0) != generation:
                return False
            self._entries[key] = (head_hash, stored)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return True

    def invalidate(self, category: str, branch_name: str) -> None:
        key = (category, branch_name)
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self) -> None:
        with self._lock:
            for key in self._entries:
                self._generations[key] = self._generations.get(key, 0) + 1
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
