"""Exceptions raised by the GCC engine."""


class GccError(Exception):
    """Base class for GCC engine errors."""


class InvalidSnapshotError(GccError, ValueError):
    """A snapshot does not have the flat list-or-scalar shape."""


class BranchExistsError(GccError, ValueError):
    """A branch with the requested name already exists in the category."""

    def __init__(self, category: str, branch_name: str):
        super().__init__(f"Branch '{branch_name}' already exists for '{category}'")
        self.category = category
        self.branch_name = branch_name


class StaleHeadError(GccError):
    """The branch head moved between reading it and writing the new commit."""

    def __init__(self, category: str, branch_name: str, expected: str | None):
        super().__init__(
            f"Head of '{category}/{branch_name}' is no longer {expected or 'empty'}"
        )
        self.category = category
        self.branch_name = branch_name
        self.expected = expected
