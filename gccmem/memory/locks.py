"""Per-lineage locks."""

import threading
from contextlib import contextmanager
from typing import Iterator


class LineageLocks:
    """
    One re-entrant lock per (category, branch).

    Writers on different branches, or different categories, never wait on
    each other here. The ledger may still serialize their transactions
    (SQLite has a single writer per database). The registry lock is only
    held while looking a lock up.
    """

    def __init__(self):
        self._locks: dict[tuple[str, str], threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def get(self, category: str, branch_name: str) -> threading.RLock:
        key = (category, branch_name)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, category: str, branch_name: str) -> Iterator[None]:
        """Hold the lock for one lineage."""
        with self.get(category, branch_name):
            yield

    @contextmanager
    def hold_many(self, category: str, *branch_names: str) -> Iterator[None]:
        """Hold several lineages of one category, acquired in sorted order."""
        locks = [self.get(category, name) for name in sorted(set(branch_names))]
        acquired: list[threading.RLock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
