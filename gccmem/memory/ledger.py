"""
Commit ledger - the persistence port of the GCC engine.

The engine talks to storage only through this protocol. Rows are plain
dicts; `GccCommit`/`GccBranch` conversion happens in the engine. A
backend must make every write inside `transaction()` durable together or
not at all.
"""

from contextlib import AbstractContextManager
from typing import Any, Protocol


class CommitLedger(Protocol):
    """Storage for commit rows and branch-head rows."""

    def transaction(self) -> AbstractContextManager[None]:
        """Open an atomic write transaction (re-entrant within one thread)."""
        ...

    def insert_commit(self, row: dict[str, Any]) -> None:
        """Store a commit row. Hashes are unique store-wide."""
        ...

    def get_commit_by_hash(self, commit_hash: str) -> dict[str, Any] | None:
        ...

    def get_branch(self, category: str, name: str) -> dict[str, Any] | None:
        ...

    def insert_branch(self, category: str, name: str, head_hash: str | None) -> bool:
        """Create a branch row. Returns False if it already exists."""
        ...

    def upsert_branch_head(
        self,
        category: str,
        name: str,
        head_hash: str,
        expected: str | None = None,
    ) -> bool:
        """
        Point a branch at a new head, creating the row if needed.

        The move only happens if the current head equals `expected`
        (compare-and-swap). Returns False when the swap is lost.
        """
        ...

    def list_branches(self, category: str) -> list[dict[str, Any]]:
        ...

    def delete_branch_and_its_commits(self, category: str, name: str) -> int:
        """Delete a branch row and the commits created on it. Returns commits removed."""
        ...

    def count_commits_on_branch(self, category: str, name: str) -> int:
        ...

    def walk_parent_chain(self, head_hash: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Commits from `head_hash` back through parents, newest first."""
        ...

    def find_dependent_branches(self, category: str, name: str) -> list[str]:
        """Other branches whose lineage reaches into commits owned by `name`."""
        ...

    def close(self) -> None:
        ...
