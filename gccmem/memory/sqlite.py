"""
SQLite commit ledger.

Embedded backend for the GCC engine. Each thread gets its own connection
(WAL journal, autocommit mode); writes run inside `BEGIN IMMEDIATE`
transactions. An in-memory database (":memory:") is shared through a
single connection guarded by a lock.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from loguru import logger


SCHEMA = """
CREATE TABLE IF NOT EXISTS gcc_branches (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    category         TEXT NOT NULL,
    branch_name      TEXT NOT NULL,
    head_commit_hash TEXT,
    created_at       TEXT NOT NULL,
    UNIQUE(category, branch_name)
);

CREATE TABLE IF NOT EXISTS gcc_commits (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    hash         TEXT NOT NULL UNIQUE,
    category     TEXT NOT NULL,
    branch_name  TEXT NOT NULL,
    parent_hash  TEXT,
    delta        TEXT NOT NULL,
    snapshot     TEXT NOT NULL,
    message      TEXT NOT NULL,
    confidence   TEXT NOT NULL DEFAULT 'MEDIUM',
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_gcc_commits_category_branch
    ON gcc_commits(category, branch_name, seq DESC);
CREATE INDEX IF NOT EXISTS idx_gcc_commits_parent
    ON gcc_commits(parent_hash);
"""

_WALK_PARENT_CHAIN = """
WITH RECURSIVE chain(hash, depth) AS (
    SELECT hash, 0 FROM gcc_commits WHERE hash = :head
    UNION ALL
    SELECT c.parent_hash, chain.depth + 1
    FROM chain JOIN gcc_commits c ON c.hash = chain.hash
    WHERE c.parent_hash IS NOT NULL
      AND (:limit IS NULL OR chain.depth + 1 < :limit)
)
SELECT c.* FROM chain JOIN gcc_commits c ON c.hash = chain.hash
ORDER BY chain.depth
"""

_FIND_DEPENDENT_BRANCHES = """
SELECT branch_name FROM gcc_branches
WHERE category = :category AND branch_name != :name
  AND head_commit_hash IN (
      SELECT hash FROM gcc_commits WHERE category = :category AND branch_name = :name
  )
UNION
SELECT branch_name FROM gcc_commits
WHERE category = :category AND branch_name != :name
  AND parent_hash IN (
      SELECT hash FROM gcc_commits WHERE category = :category AND branch_name = :name
  )
ORDER BY branch_name
"""


class SqliteLedger:
    """
    Commit ledger backed by an SQLite database.

    SQLite allows one writer per database: `BEGIN IMMEDIATE` takes a
    database-wide write lock, and an in-memory database holds its shared
    connection lock for the whole transaction. Writers on different
    categories therefore queue on this backend even though their lineage
    locks are independent. Reads in file mode run concurrently under WAL.
    Connections of threads that have exited are closed the next time a
    thread opens one.

    Attributes:
        db_path: Database file, or ":memory:".
        busy_timeout_ms: How long a writer waits for another writer's lock.
    """

    def __init__(self, db_path: str | Path, busy_timeout_ms: int = 5000):
        self.db_path = str(db_path)
        self.busy_timeout_ms = busy_timeout_ms

        self._local = threading.local()
        self._connections: dict[threading.Thread, sqlite3.Connection] = {}
        self._connections_lock = threading.Lock()

        # A private in-memory database only exists on one connection
        self._shared: sqlite3.Connection | None = None
        self._shared_lock: threading.RLock | None = None
        if self.db_path == ":memory:":
            self._shared = self._open()
            self._shared_lock = threading.RLock()
        else:
            Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        with self._use() as conn:
            conn.executescript(SCHEMA)

        logger.debug(f"Opened GCC ledger at {self.db_path}")

    # =========================================================================
    # Connections and transactions
    # =========================================================================

    def _open(self) -> sqlite3.Connection:
        path = self.db_path if self.db_path == ":memory:" else str(Path(self.db_path).expanduser())
        conn = sqlite3.connect(
            path,
            timeout=self.busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        if path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _connection(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._open()
            with self._connections_lock:
                self._close_finished_threads()
                self._connections[threading.current_thread()] = conn
            self._local.conn = conn
        return conn

    def _close_finished_threads(self) -> None:
        """Close connections owned by threads that have exited. Caller holds the lock."""
        finished = [thread for thread in self._connections if not thread.is_alive()]
        for thread in finished:
            self._connections.pop(thread).close()
        if finished:
            logger.debug(f"Closed {len(finished)} connections of finished threads")

    @property
    def open_connections(self) -> int:
        """Number of per-thread connections currently open."""
        with self._connections_lock:
            return len(self._connections)

    @contextmanager
    def _use(self) -> Iterator[sqlite3.Connection]:
        if self._shared_lock is None:
            yield self._connection()
            return
        with self._shared_lock:
            yield self._connection()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run the enclosed writes as one `BEGIN IMMEDIATE` transaction.

        Nested calls on the same thread join the outer transaction. Any
        exception rolls everything back and propagates.
        """
        depth = getattr(self._local, "depth", 0)
        if depth:
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth -= 1
            return

        with self._use() as conn:
            conn.execute("BEGIN IMMEDIATE")
            self._local.depth = 1
            try:
                yield
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                self._local.depth = 0

    def close(self) -> None:
        """Close every connection opened by this ledger."""
        with self._connections_lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()
        if self._shared is not None:
            self._shared.close()
        self._local = threading.local()
        self._shared = None

    # =========================================================================
    # Commits
    # =========================================================================

    def insert_commit(self, row: dict[str, Any]) -> None:
        with self._use() as conn:
            conn.execute(
                "INSERT INTO gcc_commits (hash, category, branch_name, parent_hash, delta, "
                "snapshot, message, confidence, created_at) VALUES "
                "(:hash, :category, :branch_name, :parent_hash, :delta, :snapshot, "
                ":message, :confidence, :created_at)",
                row,
            )

    def get_commit_by_hash(self, commit_hash: str) -> dict[str, Any] | None:
        with self._use() as conn:
            row = conn.execute(
                "SELECT * FROM gcc_commits WHERE hash = ?", (commit_hash,)
            ).fetchone()
        return dict(row) if row else None

    def count_commits_on_branch(self, category: str, name: str) -> int:
        with self._use() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM gcc_commits WHERE category = ? AND branch_name = ?",
                (category, name),
            ).fetchone()
        return row[0]

    def walk_parent_chain(self, head_hash: str, limit: int | None = None) -> list[dict[str, Any]]:
        with self._use() as conn:
            rows = conn.execute(
                _WALK_PARENT_CHAIN, {"head": head_hash, "limit": limit}
            ).fetchall()
        return [dict(row) for row in rows]

    # =========================================================================
    # Branches
    # =========================================================================

    def get_branch(self, category: str, name: str) -> dict[str, Any] | None:
        with self._use() as conn:
            row = conn.execute(
                "SELECT category, branch_name, head_commit_hash, created_at "
                "FROM gcc_branches WHERE category = ? AND branch_name = ?",
                (category, name),
            ).fetchone()
        return dict(row) if row else None

    def insert_branch(self, category: str, name: str, head_hash: str | None) -> bool:
        with self._use() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO gcc_branches (category, branch_name, head_commit_hash, created_at) "
                "VALUES (?, ?, ?, ?)",
                (category, name, head_hash, datetime.now().isoformat()),
            )
        return cur.rowcount == 1

    def upsert_branch_head(
        self,
        category: str,
        name: str,
        head_hash: str,
        expected: str | None = None,
    ) -> bool:
        with self.transaction(), self._use() as conn:
            if self.get_branch(category, name) is None:
                if expected is not None:
                    return False
                return self.insert_branch(category, name, head_hash)

            cur = conn.execute(
                "UPDATE gcc_branches SET head_commit_hash = ? "
                "WHERE category = ? AND branch_name = ? AND head_commit_hash IS ?",
                (head_hash, category, name, expected),
            )
            return cur.rowcount == 1

    def list_branches(self, category: str) -> list[dict[str, Any]]:
        with self._use() as conn:
            rows = conn.execute(
                "SELECT category, branch_name, head_commit_hash, created_at "
                "FROM gcc_branches WHERE category = ? ORDER BY branch_name",
                (category,),
            ).fetchall()
        return [dict(row) for row in rows]

    def delete_branch_and_its_commits(self, category: str, name: str) -> int:
        with self.transaction(), self._use() as conn:
            cur = conn.execute(
                "DELETE FROM gcc_commits WHERE category = ? AND branch_name = ?",
                (category, name),
            )
            removed = cur.rowcount
            conn.execute(
                "DELETE FROM gcc_branches WHERE category = ? AND branch_name = ?",
                (category, name),
            )
        return removed

    def find_dependent_branches(self, category: str, name: str) -> list[str]:
        with self._use() as conn:
            rows = conn.execute(
                _FIND_DEPENDENT_BRANCHES, {"category": category, "name": name}
            ).fetchall()
        return [row[0] for row in rows]
