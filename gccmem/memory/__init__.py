"""
Git-like Context Commit (GCC) engine.

This module provides a version-controlled store for structured knowledge
snapshots, with one independent history per category, supporting:
- Immutable commits carrying full snapshots and list-field deltas
- Pointer-fork branches per category
- Union/conflict merges between branch heads
- Non-destructive rollback and legacy migration
"""

from gccmem.memory.branch import BranchSummary, GccBranch
from gccmem.memory.commit import GccCommit, GccDelta, LogEntry
from gccmem.memory.errors import BranchExistsError, GccError, InvalidSnapshotError, StaleHeadError
from gccmem.memory.fields import DEFAULT_BRANCH, MemoryCategory
from gccmem.memory.merge import MergeConflict, MergeResult
from gccmem.memory.sqlite import SqliteLedger
from gccmem.memory.store import GccStore

__all__ = [
    "DEFAULT_BRANCH",
    "MemoryCategory",
    "GccCommit",
    "GccDelta",
    "LogEntry",
    "GccBranch",
    "BranchSummary",
    "MergeConflict",
    "MergeResult",
    "SqliteLedger",
    "GccStore",
    "GccError",
    "InvalidSnapshotError",
    "BranchExistsError",
    "StaleHeadError",
]
