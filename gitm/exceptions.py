"""Custom exceptions for gitm"""

from typing import List, Optional, Sequence


class GitmError(Exception):
    """Base exception for all gitm errors."""
    pass


class URLParseError(GitmError):
    """Exception raised when a remote URL cannot be turned into a repository identity."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class InvalidURLFormatError(URLParseError):
    """The URL has a recognised shape but is malformed."""
    pass


class UnsupportedURLFormatError(URLParseError):
    """The URL is neither an SSH nor an HTTP(S) remote."""

    def __init__(self, url: str):
        super().__init__(url, "unsupported git URL format")


class PathNotFoundError(GitmError):
    """Exception raised when a repository's working tree is missing."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"repository path does not exist: {path}")


class RepositoryExistsError(GitmError):
    """Exception raised when a clone target is already occupied."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"repository already exists at {path}")


class CommandError(GitmError):
    """Exception raised when an external command exits unsuccessfully."""

    def __init__(self, args: Sequence[str], status: Optional[int] = None, stderr: str = ""):
        self.command_args = list(args)
        self.status = status
        self.stderr = stderr.strip()

        error_msg = f"command '{' '.join(self.command_args)}' failed"
        if status is not None:
            error_msg += f" (exit {status})"
        if self.stderr:
            error_msg += f": {self.stderr}"

        super().__init__(error_msg)


class CommandTimeoutError(CommandError):
    """Exception raised when a command is killed after exceeding its timeout."""

    def __init__(self, args: Sequence[str], timeout: float):
        self.timeout = timeout
        super().__init__(args, stderr=f"timed out after {timeout:g}s")


class GitOperationError(GitmError):
    """Exception raised for errors in Git operations."""

    operation = "git"

    def __init__(
        self,
        repository: str = "",
        branch: Optional[str] = None,
        message: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        if operation is not None:
            self.operation = operation
        self.repository = repository
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{self.operation}' failed"
        if repository:
            error_msg += f" in {repository}"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class CloneError(GitOperationError):
    operation = "clone"


class FetchError(GitOperationError):
    operation = "fetch"


class PullError(GitOperationError):
    operation = "pull"


class CheckoutError(GitOperationError):
    operation = "checkout"


class StatusError(GitOperationError):
    operation = "status"


class DefaultBranchError(GitOperationError):
    """Neither main nor master exists and the current branch is unknown."""

    operation = "default_branch"


class DeleteBranchError(GitOperationError):
    """Exception raised when a branch deletion fails during pruning.

    ``candidates`` holds every branch selected for pruning and ``deleted``
    the ones removed before the failure.
    """

    operation = "delete_branch"

    def __init__(
        self,
        repository: str,
        branch: str,
        message: Optional[str] = None,
        candidates: Optional[List[str]] = None,
        deleted: Optional[List[str]] = None,
    ):
        self.candidates = list(candidates or [])
        self.deleted = list(deleted or [])
        super().__init__(repository, branch, message)


class UncommittedChangesError(GitmError):
    """Raised when an update is refused because the working tree is dirty.

    This is a guard rather than a transport failure; it is intentionally not
    a GitOperationError so callers can tell the two apart.
    """

    def __init__(self, repository: str, changes: Optional[List[str]] = None):
        self.repository = repository
        self.changes = list(changes or [])
        super().__init__(f"cannot update {repository}: repository has uncommitted changes")


class DiscoveryError(GitmError):
    """Exception raised when a directory tree cannot be walked."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        error_msg = f"failed to find repositories under {path}"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class GitHubListingError(GitmError):
    """Exception raised when GitHub repositories cannot be listed."""

    def __init__(self, owner: str, message: Optional[str] = None):
        self.owner = owner
        error_msg = "failed to list GitHub repositories"
        if owner:
            error_msg += f" for '{owner}'"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class ConfigError(GitmError):
    """Exception raised for invalid or unreadable configuration."""
    pass
