"""
GCC store - main interface of the Git-like Context Commit engine.

Each knowledge category has its own branches and commit history. A
commit records the full snapshot plus the list-field delta from its
parent; merges, rollbacks and legacy migrations all go through the same
commit path.
"""

from loguru import logger

from gccmem.config.schema import GccConfig
from gccmem.memory.branch import BranchSummary, GccBranch
from gccmem.memory.branches import BranchDirectory, validate_branch_name
from gccmem.memory.cache import SnapshotCache
from gccmem.memory.commit import GccCommit, LogEntry
from gccmem.memory.delta import compute_delta
from gccmem.memory.errors import StaleHeadError
from gccmem.memory.fields import (
    DEFAULT_BRANCH,
    Confidence,
    MemoryCategory,
    Snapshot,
    copy_snapshot,
    normalize_category,
    validate_confidence,
    validate_snapshot,
)
from gccmem.memory.hash import mint_hash
from gccmem.memory.ledger import CommitLedger
from gccmem.memory.locks import LineageLocks
from gccmem.memory.merge import MergeResult, resolve_snapshots
from gccmem.memory.sqlite import SqliteLedger


LEGACY_MIGRATION_MESSAGE = "Migrated from legacy data"


class GccStore:
    """
    Version-controlled store for structured snapshots.

    Writes to one (category, branch) lineage are serialized by a lineage
    lock and run inside a single ledger transaction; the branch head is
    moved with a compare-and-swap against the parent the delta was
    computed from. Head snapshots are served from a local cache that every
    write invalidates.

    Commit interface:
        - commit() / migrate_from_legacy() / rollback() / merge()

    Read interface:
        - get_head_snapshot() / get_head_commit() / log()

    Branch interface:
        - create_branch() / list_branches() / delete_branch() / switch_branch()
    """

    def __init__(self, ledger: CommitLedger, config: GccConfig | None = None):
        self.config = config or GccConfig()
        self.ledger = ledger
        self.locks = LineageLocks()
        self.cache = SnapshotCache(self.config.cache_max_entries)
        self.branches = BranchDirectory(self.ledger, self.locks, self.cache)

    @classmethod
    def open(cls, config: GccConfig | None = None) -> "GccStore":
        """Open a store over the SQLite database named in the config."""
        config = config or GccConfig()
        ledger = SqliteLedger(config.db_file, busy_timeout_ms=config.busy_timeout_ms)
        return cls(ledger, config)

    def close(self) -> None:
        self.cache.clear()
        self.ledger.close()

    def __enter__(self) -> "GccStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # Commit Engine
    # =========================================================================

    def commit(
        self,
        category: str | MemoryCategory,
        snapshot: Snapshot,
        message: str,
        confidence: Confidence,
        branch_name: str = DEFAULT_BRANCH,
    ) -> GccCommit:
        """
        Commit a new snapshot as the head of a branch.

        The branch is created if this is its first commit.

        Args:
            category: Knowledge category.
            snapshot: Full new state (lists of strings and scalars).
            message: Human-readable commit message.
            confidence: HIGH, MEDIUM or LOW.
            branch_name: Branch to commit to (default: main).

        Returns:
            The created commit. Its snapshot is a private copy.
        """
        category = normalize_category(category)
        validate_branch_name(branch_name)
        validate_confidence(confidence)
        validate_snapshot(snapshot)

        with self.locks.hold(category, branch_name):
            return self._append(category, branch_name, snapshot, message, confidence)

    def _append(
        self,
        category: str,
        branch_name: str,
        snapshot: Snapshot,
        message: str,
        confidence: Confidence,
    ) -> GccCommit:
        """Append a commit to a branch. The caller holds the lineage lock."""
        try:
            with self.ledger.transaction():
                head = self._read_head_commit(category, branch_name)
                parent_hash = head.hash if head else None
                old_snapshot = head.snapshot if head else {}

                commit = GccCommit(
                    hash=self._mint_unique_hash(category, branch_name, parent_hash),
                    category=category,
                    branch_name=branch_name,
                    parent_hash=parent_hash,
                    delta=compute_delta(old_snapshot, snapshot, self.config.volatile_fields),
                    snapshot=copy_snapshot(snapshot),
                    message=message,
                    confidence=confidence,
                )
                self.ledger.insert_commit(commit.to_row())

                if not self.ledger.upsert_branch_head(
                    category, branch_name, commit.hash, expected=parent_hash
                ):
                    raise StaleHeadError(category, branch_name, parent_hash)
        finally:
            self.cache.invalidate(category, branch_name)

        added, removed = commit.delta.counts()
        logger.debug(
            f"Committed {commit.hash[:8]} to {category}/{branch_name} "
            f"(+{added}/-{removed}): {message}"
        )
        return commit

    def _mint_unique_hash(self, category: str, branch_name: str, parent_hash: str | None) -> str:
        while True:
            commit_hash = mint_hash(category, branch_name, parent_hash)
            if self.ledger.get_commit_by_hash(commit_hash) is None:
                return commit_hash
            logger.warning(f"Commit hash collision on {commit_hash}, minting another")

    def migrate_from_legacy(
        self,
        category: str | MemoryCategory,
        legacy_data: Snapshot,
    ) -> GccCommit:
        """
        Import a flat legacy object as a commit on main.

        Existing history is not checked; use `migrate_if_empty` to only
        migrate categories that have none.
        """
        commit = self.commit(category, legacy_data, LEGACY_MIGRATION_MESSAGE, "MEDIUM")
        logger.info(f"Migrated legacy data for '{commit.category}' as {commit.hash[:8]}")
        return commit

    def migrate_if_empty(
        self,
        category: str | MemoryCategory,
        legacy_data: Snapshot,
    ) -> GccCommit | None:
        """Migrate legacy data only if main has no commits yet."""
        category = normalize_category(category)
        with self.locks.hold(category, DEFAULT_BRANCH):
            if self.get_head_commit(category) is not None:
                return None
            return self.migrate_from_legacy(category, legacy_data)

    # =========================================================================
    # History Reader
    # =========================================================================

    def _read_head_commit(self, category: str, branch_name: str) -> GccCommit | None:
        branch = self.ledger.get_branch(category, branch_name)
        if branch is None or not branch["head_commit_hash"]:
            return None
        row = self.ledger.get_commit_by_hash(branch["head_commit_hash"])
        return GccCommit.from_row(row) if row else None

    def get_head_commit(
        self,
        category: str | MemoryCategory,
        branch_name: str = DEFAULT_BRANCH,
    ) -> GccCommit | None:
        """Get the head commit of a branch, or None if it has no commits."""
        return self._read_head_commit(normalize_category(category), branch_name)

    def get_head_snapshot(
        self,
        category: str | MemoryCategory,
        branch_name: str = DEFAULT_BRANCH,
    ) -> Snapshot | None:
        """
        Get the snapshot at the head of a branch.

        Every call returns an independent deep copy. A cached snapshot is
        only served while its head hash matches the stored branch head, so
        commits made through another store on the same database are seen.

        Returns:
            The snapshot, or None if the branch has no commits.
        """
        category = normalize_category(category)

        cached = self.cache.get(category, branch_name)
        if cached is not None:
            branch = self.ledger.get_branch(category, branch_name)
            if branch is not None and branch["head_commit_hash"] == cached[0]:
                return cached[1]
            self.cache.invalidate(category, branch_name)

        generation = self.cache.generation(category, branch_name)
        head = self._read_head_commit(category, branch_name)
        if head is None:
            return None

        self.cache.put(category, branch_name, head.hash, head.snapshot, generation)
        return copy_snapshot(head.snapshot)

    def log(
        self,
        category: str | MemoryCategory,
        branch_name: str = DEFAULT_BRANCH,
        limit: int | None = None,
    ) -> list[LogEntry]:
        """
        Get the history of a branch.

        Follows parent links from the head, so commits inherited from the
        branch it was forked from are included.

        Args:
            category: Knowledge category.
            branch_name: Branch to read (default: main).
            limit: Maximum entries to return (None for the whole lineage).

        Returns:
            Log entries from newest to oldest.
        """
        if limit is not None and limit <= 0:
            return []

        branch = self.ledger.get_branch(normalize_category(category), branch_name)
        if branch is None or not branch["head_commit_hash"]:
            return []

        rows = self.ledger.walk_parent_chain(branch["head_commit_hash"], limit)
        return [LogEntry.from_commit(GccCommit.from_row(row)) for row in rows]

    # =========================================================================
    # Merge, Rollback
    # =========================================================================

    def merge(
        self,
        category: str | MemoryCategory,
        source_branch: str,
        target_branch: str = DEFAULT_BRANCH,
    ) -> MergeResult:
        """
        Merge the head of one branch into another.

        List fields are unioned (case-insensitive dedup, target items
        first). Differing scalars are reported as conflicts and the target
        value is kept. The result is committed on the target branch with
        message "Merge '<source>' into '<target>'" and the configured merge
        confidence.

        Returns:
            MergeResult. `success` is False only if the source branch has
            no commits; conflicts do not make a merge fail.
        """
        category = normalize_category(category)
        validate_branch_name(source_branch)
        validate_branch_name(target_branch)

        with self.locks.hold(category, target_branch):
            source_head = self._read_head_commit(category, source_branch)
            if source_head is None:
                logger.info(f"Nothing to merge: '{category}/{source_branch}' has no commits")
                return MergeResult(success=False)

            target_head = self._read_head_commit(category, target_branch)
            merged, conflicts = resolve_snapshots(
                source_head.snapshot,
                target_head.snapshot if target_head else {},
                volatile_fields=self.config.volatile_fields,
            )

            commit = self._append(
                category,
                target_branch,
                merged,
                f"Merge '{source_branch}' into '{target_branch}'",
                self.config.merge_confidence,
            )

        logger.info(
            f"Merged {category}/{source_branch} into {target_branch} as {commit.hash[:8]} "
            f"({len(conflicts)} conflicts)"
        )
        return MergeResult(success=True, commit_hash=commit.hash, conflicts=conflicts)

    def rollback(
        self,
        category: str | MemoryCategory,
        target_hash: str,
        branch_name: str = DEFAULT_BRANCH,
    ) -> GccCommit | None:
        """
        Restore the snapshot of an earlier commit as a new head.

        History is never rewritten: a new commit with the old snapshot is
        appended, so the rollback itself can be rolled back.

        Args:
            category: Knowledge category; the target commit must belong to it.
            target_hash: Commit whose snapshot to restore.
            branch_name: Branch to append the rollback commit to.

        Returns:
            The rollback commit, or None if the hash is unknown or belongs
            to another category.
        """
        category = normalize_category(category)
        validate_branch_name(branch_name)

        row = self.ledger.get_commit_by_hash(target_hash)
        if row is None or row["category"] != category:
            return None
        target = GccCommit.from_row(row)

        with self.locks.hold(category, branch_name):
            commit = self._append(
                category,
                branch_name,
                target.snapshot,
                f"Rollback to {target_hash}",
                target.confidence,
            )

        logger.info(f"Rolled back {category}/{branch_name} to {target_hash[:8]} as {commit.hash[:8]}")
        return commit

    # =========================================================================
    # Branch Directory
    # =========================================================================

    def create_branch(
        self,
        category: str | MemoryCategory,
        new_name: str,
        from_branch: str = DEFAULT_BRANCH,
    ) -> GccBranch:
        return self.branches.create_branch(category, new_name, from_branch)

    def list_branches(self, category: str | MemoryCategory) -> list[BranchSummary]:
        return self.branches.list_branches(category)

    def delete_branch(self, category: str | MemoryCategory, branch_name: str) -> bool:
        return self.branches.delete_branch(category, branch_name)

    def switch_branch(self, category: str | MemoryCategory, branch_name: str) -> GccBranch | None:
        return self.branches.switch_branch(category, branch_name)
