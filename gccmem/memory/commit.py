"""Commit data structures."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from gccmem.memory.fields import Confidence, Snapshot


@dataclass
class GccDelta:
    """
    List items added and removed between a commit and its parent.

    Attributes:
        added: Field name -> items present in the new snapshot only.
        removed: Field name -> items present in the old snapshot only.
    """

    added: dict[str, list[str]] = field(default_factory=dict)
    removed: dict[str, list[str]] = field(default_factory=dict)

    def counts(self) -> tuple[int, int]:
        """Total number of added and removed items across all fields."""
        added = sum(len(items) for items in self.added.values())
        removed = sum(len(items) for items in self.removed.values())
        return added, removed

    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": {k: list(v) for k, v in self.added.items()},
            "removed": {k: list(v) for k, v in self.removed.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GccDelta":
        return cls(
            added={k: list(v) for k, v in data.get("added", {}).items()},
            removed={k: list(v) for k, v in data.get("removed", {}).items()},
        )

    @classmethod
    def from_json(cls, raw: str | None, commit_hash: str = "") -> "GccDelta":
        """Parse a stored delta, falling back to an empty one if it is corrupt."""
        try:
            return cls.from_dict(json.loads(raw or "{}"))
        except (json.JSONDecodeError, AttributeError, TypeError):
            logger.warning(f"Corrupt delta JSON in commit {commit_hash}, using empty delta")
            return cls()


@dataclass(frozen=True)
class GccCommit:
    """
    An immutable commit in a category's history.

    Each commit carries the full snapshot at that point (not a diff) plus
    the list-field delta from its parent. Commits link to their parent,
    forming a DAG across branches of the same category.

    Attributes:
        hash: Opaque unique identifier (16 hex characters).
        category: Knowledge category this commit belongs to.
        branch_name: Branch the commit was created on.
        parent_hash: Hash of the previous head (None for a lineage root).
        delta: List items added/removed relative to the parent.
        snapshot: Full state at this commit.
        message: Human-readable description.
        confidence: HIGH, MEDIUM or LOW.
        created_at: When the commit was created.
    """

    hash: str
    category: str
    branch_name: str
    parent_hash: str | None
    delta: GccDelta
    snapshot: Snapshot
    message: str
    confidence: Confidence
    created_at: datetime = field(default_factory=datetime.now)

    def to_row(self) -> dict[str, Any]:
        """Serialize to a storage row."""
        return {
            "hash": self.hash,
            "category": self.category,
            "branch_name": self.branch_name,
            "parent_hash": self.parent_hash,
            "delta": json.dumps(self.delta.to_dict(), ensure_ascii=False),
            "snapshot": json.dumps(self.snapshot, ensure_ascii=False),
            "message": self.message,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GccCommit":
        """Create from a storage row."""
        commit_hash = row["hash"]
        try:
            snapshot = json.loads(row.get("snapshot") or "{}")
            if not isinstance(snapshot, dict):
                raise TypeError("snapshot is not an object")
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Corrupt snapshot JSON in commit {commit_hash}, using empty snapshot")
            snapshot = {}

        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        return cls(
            hash=commit_hash,
            category=row["category"],
            branch_name=row["branch_name"],
            parent_hash=row.get("parent_hash") or None,
            delta=GccDelta.from_json(row.get("delta"), commit_hash),
            snapshot=snapshot,
            message=row["message"],
            confidence=row["confidence"],
            created_at=created_at or datetime.now(),
        )

    def __str__(self) -> str:
        return f"{self.hash[:8]} [{self.category}/{self.branch_name}] {self.message}"

    def __repr__(self) -> str:
        return f"GccCommit(hash={self.hash[:8]}..., category={self.category}, branch={self.branch_name})"


@dataclass
class LogEntry:
    """Summary of one commit as returned by `GccStore.log`."""

    hash: str
    parent_hash: str | None
    message: str
    confidence: Confidence
    created_at: datetime
    delta_added: int
    delta_removed: int

    @classmethod
    def from_commit(cls, commit: GccCommit) -> "LogEntry":
        added, removed = commit.delta.counts()
        return cls(
            hash=commit.hash,
            parent_hash=commit.parent_hash,
            message=commit.message,
            confidence=commit.confidence,
            created_at=commit.created_at,
            delta_added=added,
            delta_removed=removed,
        )
