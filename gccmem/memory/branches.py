"""
Branch directory for the GCC engine.

Creates, lists, deletes and looks up named branches of a category.
"""

from loguru import logger

from gccmem.memory.branch import BranchSummary, GccBranch
from gccmem.memory.cache import SnapshotCache
from gccmem.memory.errors import BranchExistsError
from gccmem.memory.fields import DEFAULT_BRANCH, MemoryCategory, normalize_category
from gccmem.memory.ledger import CommitLedger
from gccmem.memory.locks import LineageLocks


def validate_branch_name(name: str) -> str:
    """Reject empty or blank branch names."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"Invalid branch name: {name!r}")
    return name


class BranchDirectory:
    """
    Manages the branches of each category.

    Provides operations for:
    - Branch creation (pointer forks, no commits are copied)
    - Branch listing with per-branch commit counts
    - Branch deletion together with the commits created on it
    - Branch lookup
    """

    def __init__(
        self,
        ledger: CommitLedger,
        locks: LineageLocks,
        cache: SnapshotCache,
    ):
        self.ledger = ledger
        self.locks = locks
        self.cache = cache

    def create_branch(
        self,
        category: str | MemoryCategory,
        new_name: str,
        from_branch: str = DEFAULT_BRANCH,
    ) -> GccBranch:
        """
        Create a new branch pointing at the head of another.

        The new branch shares the source head commit; nothing is copied.
        If the source has no commits (or does not exist), the new branch
        starts empty.

        Args:
            category: Category of both branches.
            new_name: Name of the branch to create.
            from_branch: Branch to fork from (default: main).

        Returns:
            The created branch.

        Raises:
            BranchExistsError: If `new_name` already exists. "main" always
                exists, even before its first commit.
        """
        category = normalize_category(category)
        validate_branch_name(new_name)
        validate_branch_name(from_branch)

        with self.locks.hold_many(category, new_name, from_branch):
            if new_name == DEFAULT_BRANCH or self.ledger.get_branch(category, new_name):
                raise BranchExistsError(category, new_name)

            source = self.ledger.get_branch(category, from_branch)
            head = source["head_commit_hash"] if source else None

            with self.ledger.transaction():
                if not self.ledger.insert_branch(category, new_name, head):
                    raise BranchExistsError(category, new_name)
            self.cache.invalidate(category, new_name)

            row = self.ledger.get_branch(category, new_name)

        branch = GccBranch.from_row(row)
        logger.debug(f"Created branch {branch} from '{from_branch}'")
        return branch

    def switch_branch(self, category: str | MemoryCategory, branch_name: str) -> GccBranch | None:
        """Look up a branch. Nothing is changed."""
        row = self.ledger.get_branch(normalize_category(category), branch_name)
        return GccBranch.from_row(row) if row else None

    def list_branches(self, category: str | MemoryCategory) -> list[BranchSummary]:
        """
        List the branches of a category, sorted by name.

        `commit_count` only counts commits created on the branch itself;
        commits inherited from the branch it was forked from are not counted.
        """
        category = normalize_category(category)
        summaries = []
        for row in self.ledger.list_branches(category):
            branch = GccBranch.from_row(row)
            summaries.append(BranchSummary(
                branch_name=branch.branch_name,
                head_commit_hash=branch.head_commit_hash,
                commit_count=self.ledger.count_commits_on_branch(category, branch.branch_name),
                created_at=branch.created_at,
            ))
        return summaries

    def delete_branch(self, category: str | MemoryCategory, branch_name: str) -> bool:
        """
        Delete a branch and every commit created on it.

        Cannot delete the main branch, an unknown branch, or a branch whose
        commits other branches still build on.

        Args:
            category: Category of the branch.
            branch_name: Branch name.

        Returns:
            True if deleted, False otherwise.
        """
        category = normalize_category(category)
        if branch_name == DEFAULT_BRANCH:
            logger.warning(f"Cannot delete the main branch of '{category}'")
            return False

        with self.locks.hold(category, branch_name):
            with self.ledger.transaction():
                if self.ledger.get_branch(category, branch_name) is None:
                    return False

                dependents = self.ledger.find_dependent_branches(category, branch_name)
                if dependents:
                    logger.warning(
                        f"Cannot delete '{category}/{branch_name}': "
                        f"branches {', '.join(dependents)} build on its commits"
                    )
                    return False

                removed = self.ledger.delete_branch_and_its_commits(category, branch_name)
            self.cache.invalidate(category, branch_name)

        logger.info(f"Deleted branch '{category}/{branch_name}' ({removed} commits)")
        return True
