"""libdag error types."""


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


class BareRepositoryError(RepositoryError):
    """Raised when a working-tree operation is attempted on a bare repository."""


class ObjectNotFoundError(RepositoryError):
    """Raised when a requested object hash is absent from the object store."""

    def __init__(self, object_hash: str) -> None:
        self.hash = object_hash
        super().__init__(f'Object {object_hash} not found')


class InvalidObjectError(RepositoryError):
    """Raised when a hash does not point to a valid object of the expected kind."""


class UnbornBranchError(RepositoryError):
    """Raised when a branch has no commits yet."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f'Branch "{branch}" has no commits yet')


class BranchExistsError(RepositoryError):
    """Raised when creating a branch whose name is already taken."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f'A branch named "{branch}" already exists')


class RefNotFoundError(RepositoryError):
    """Raised when a named reference does not exist."""


class RemoteNotFoundError(RepositoryError):
    """Raised when a remote is not configured."""


class NoCommonAncestorError(RepositoryError):
    """Raised when merging two commits with unrelated histories."""


class AlreadyInConflictError(RepositoryError):
    """Raised when a merge is started while a previous one is unresolved."""


class UnresolvedConflictsError(RepositoryError):
    """Raised when the index still holds conflict-stage entries.

    Attributes:
        paths: The conflicted paths, sorted.
    """

    def __init__(self, paths: set[str] | list[str]) -> None:
        self.paths = sorted(paths)
        super().__init__(f'Unresolved conflicts in: {", ".join(self.paths)}')


class NothingToCommitError(RepositoryError):
    """Raised when a commit would not change the tree of HEAD."""


class LocalChangesError(RepositoryError):
    """Raised when uncommitted changes would be overwritten.

    Attributes:
        paths: The paths with local changes, sorted.
    """

    def __init__(self, paths: set[str] | list[str]) -> None:
        self.paths = sorted(paths)
        super().__init__(f'Local changes would be overwritten: {", ".join(self.paths)}')


class NonFastForwardError(RepositoryError):
    """Raised when a ref update would discard commits and was not forced."""


class RefusedCheckedOutBranchError(RepositoryError):
    """Raised when pushing to the checked-out branch of a non-bare repository."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f'Refusing to update checked out branch {branch}')
