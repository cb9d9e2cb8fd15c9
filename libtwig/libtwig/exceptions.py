"""Exceptions raised by libtwig."""


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


class InvariantViolation(RepositoryError):
    """Exception raised when persisted state is internally inconsistent.

    A ref pointing at a missing commit, or a commit referencing a missing blob, cannot happen as long as
    objects are always written before the pointers that reference them."""


class ObjectNotFoundError(RepositoryError):
    """Exception raised when no stored object matches a digest or digest prefix."""


class UserError(RepositoryError):
    """Expected failure of a repository operation.

    The message is meant to be shown to the user as is. No persisted state has been changed when it is raised."""


class BranchExistsError(UserError):
    """Raised when creating a branch whose name is taken."""

    def __init__(self) -> None:
        super().__init__('A branch with that name already exists.')


class NoSuchBranchError(UserError):
    """Raised when a branch name cannot be resolved."""

    def __init__(self, msg: str = 'A branch with that name does not exist.') -> None:
        super().__init__(msg)


class BranchNameConflictError(UserError):
    """Raised when a new branch name would nest inside an existing branch, or an existing branch inside it."""

    def __init__(self) -> None:
        super().__init__('A branch name conflicts with an existing branch.')


class CurrentBranchError(UserError):
    """Raised when deleting the checked-out branch."""

    def __init__(self) -> None:
        super().__init__('Cannot remove the current branch.')


class NothingToRemoveError(UserError):
    """Raised when removing a file that is neither staged nor tracked."""

    def __init__(self) -> None:
        super().__init__('No reason to remove the file.')


class NoSuchCommitError(UserError):
    """Raised when a commit id (or id prefix) matches no stored commit."""

    def __init__(self) -> None:
        super().__init__('No commit with that id exists.')


class UntrackedFileError(UserError):
    """Raised when a checkout or merge would overwrite an untracked working file."""

    def __init__(self, paths: list[str] | None = None) -> None:
        self.paths = paths or []
        super().__init__('There is an untracked file in the way; delete it, or add and commit it first.')
