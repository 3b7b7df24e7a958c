"""Branch data structures."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class GccBranch:
    """
    A named pointer to the latest commit of a lineage, scoped to a category.

    Attributes:
        category: Knowledge category the branch belongs to.
        branch_name: Unique name within the category ("main", "experiment", ...).
        head_commit_hash: Hash of the latest commit (None if empty).
        created_at: When the branch was created.
    """

    category: str
    branch_name: str
    head_commit_hash: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GccBranch":
        """Create from a storage row."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            category=row["category"],
            branch_name=row["branch_name"],
            head_commit_hash=row.get("head_commit_hash") or None,
            created_at=created_at or datetime.now(),
        )

    def __str__(self) -> str:
        head_short = self.head_commit_hash[:8] if self.head_commit_hash else "empty"
        return f"{self.category}/{self.branch_name} -> {head_short}"


@dataclass
class BranchSummary:
    """A branch with the number of commits created on it."""

    branch_name: str
    head_commit_hash: str | None
    commit_count: int
    created_at: datetime
