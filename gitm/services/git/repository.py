"""Repository model: status aggregation, updates and branch pruning."""

import os
from typing import List, Optional, Sequence

from gitm.exceptions import (
    CheckoutError,
    CloneError,
    CommandError,
    DefaultBranchError,
    DeleteBranchError,
    FetchError,
    GitOperationError,
    PathNotFoundError,
    PullError,
    RepositoryExistsError,
    StatusError,
    UncommittedChangesError,
)
from gitm.logging_config import get_logger
from gitm.models.branch import BranchInfo, BranchUpdateState
from gitm.models.status import BranchUpdateResult, RepositoryStatus, UpdateResult
from gitm.services.executor import CommandExecutor, GitCommandExecutor
from gitm.services.git.branch_parser import parse_branch_listing
from gitm.services.git.url_parser import split_url

logger = get_logger(__name__)

DEFAULT_BRANCH_CANDIDATES = ("main", "master")


def _decode(output: bytes) -> str:
    return output.decode("utf-8", errors="replace")


class Repository:
    """A repository laid out as ``<root>/<host>/<organization>/<name>``."""

    def __init__(
        self,
        host: str = "",
        organization: str = "",
        name: str = "",
        path: str = "",
        executor: Optional[CommandExecutor] = None,
    ):
        """
        Args:
            host: Remote host, e.g. github.com
            organization: Organization or user owning the repository
            name: Repository name
            path: Local working tree path (empty until cloned)
            executor: Command executor; a GitCommandExecutor when omitted
        """
        self.host = host
        self.organization = organization
        self.name = name
        self.path = path
        self.executor = executor if executor is not None else GitCommandExecutor()

    def __repr__(self) -> str:
        return f"Repository({self.full_name!r}, path={self.path!r})"

    @property
    def full_name(self) -> str:
        """``host/organization/name``, or just the name for bare repositories."""
        if self.host or self.organization:
            return f"{self.host}/{self.organization}/{self.name}"
        return self.name

    @property
    def key(self) -> str:
        """Identity used to join concurrent results back to their repository."""
        return self.path or self.full_name

    def _run(self, args: Sequence[str], stream: bool = False) -> bytes:
        return self.executor.execute(self.path, stream, list(args))

    def _run_text(self, args: Sequence[str]) -> str:
        return _decode(self._run(args))

    # ------------------------------------------------------------------
    # Clone
    # ------------------------------------------------------------------

    def target_path(self, root_dir: str) -> str:
        return os.path.join(root_dir, self.host, self.organization, self.name)

    def clone(self, root_dir: str, url: str, options: Optional[Sequence[str]] = None) -> None:
        """Clone ``url`` into ``<root_dir>/<host>/<organization>/<name>``.

        Raises:
            RepositoryExistsError: the target directory already exists
            CloneError: directories could not be created or git clone failed
        """
        target = self.target_path(root_dir)
        if os.path.exists(target):
            raise RepositoryExistsError(target)

        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
        except OSError as e:
            raise CloneError(self.full_name, message=f"failed to create directories: {e}") from e

        logger.info(f"Cloning {url} into {target}")
        try:
            self.executor.execute(target, True, ["clone", *(options or []), url, target])
        except CommandError as e:
            raise CloneError(self.full_name, message=str(e)) from e

        self.path = target

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> RepositoryStatus:
        """Gather uncommitted changes, branches and stashes.

        Raises:
            PathNotFoundError: the working tree does not exist
            StatusError: any of the underlying git queries failed
        """
        if not self.path or not os.path.exists(self.path):
            raise PathNotFoundError(self.path)

        status = RepositoryStatus(repository=self)
        try:
            changes = self._get_uncommitted_changes()
        except CommandError as e:
            raise StatusError(self.full_name, message=f"failed to get uncommitted changes: {e}") from e
        status.has_uncommitted_changes = bool(changes)
        status.uncommitted_changes = changes

        try:
            status.branches = self._get_branches()
        except CommandError as e:
            raise StatusError(self.full_name, message=f"failed to get branch information: {e}") from e

        try:
            status.stash_count = self._get_stash_count()
        except CommandError as e:
            raise StatusError(self.full_name, message=f"failed to get stash information: {e}") from e

        logger.debug(
            f"{self.full_name}: {len(status.branches)} branches, "
            f"{len(changes)} changes, {status.stash_count} stashes"
        )
        return status

    def _get_uncommitted_changes(self) -> List[str]:
        output = self._run_text(["status", "--porcelain"])
        return [line for line in output.splitlines() if line.strip()]

    def _get_branches(self) -> List[BranchInfo]:
        return parse_branch_listing(self._run_text(["branch", "-vv"]))

    def _get_stash_count(self) -> int:
        lines = self._run_text(["stash", "list"]).strip().splitlines()
        if not lines or not lines[0].strip():
            return 0
        return len([line for line in lines if line.strip()])

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, fetch_only: bool = False, prune: bool = False) -> UpdateResult:
        """Fetch all remotes and fast-forward every branch that is behind.

        Branches are processed one at a time since each needs a checkout.
        The originally checked-out branch (or commit, on a detached HEAD) is
        restored at the end even when individual branches fail; a failed restore is reported on the result.

        Raises:
            GitOperationError: the current branch could not be determined
            FetchError: fetching failed
            StatusError, PathNotFoundError: status could not be derived
            UncommittedChangesError: the working tree is dirty
        """
        original_branch = self.get_current_branch()
        if original_branch == "HEAD":
            # Detached: restore by commit, no branch name matches it
            original_branch = self.get_head_commit()

        fetch_args = ["--all"]
        if prune:
            fetch_args.append("--prune")
        self.fetch(fetch_args)

        status = self.status()
        if status.has_uncommitted_changes:
            raise UncommittedChangesError(self.full_name, status.uncommitted_changes)

        result = UpdateResult(repository=self)
        if fetch_only:
            return result

        for branch in status.branches:
            if not branch.has_live_tracking:
                continue
            result.branch_results[branch.name] = self._update_branch(branch, original_branch)

        if original_branch:
            try:
                self.checkout(original_branch)
            except CheckoutError as e:
                logger.warning(f"{self.full_name}: failed to restore branch {original_branch}: {e}")
                result.restore_error = e

        return result

    def _update_branch(self, branch: BranchInfo, original_branch: str) -> BranchUpdateResult:
        update = BranchUpdateResult(branch=branch)
        if not branch.needs_pull:
            update.state = BranchUpdateState.UP_TO_DATE
            return update

        checked_out = False
        if branch.name != original_branch:
            update.state = BranchUpdateState.CHECKING_OUT
            try:
                self.checkout(branch.name)
            except CheckoutError as e:
                update.state = BranchUpdateState.FAILED
                update.error = e
                return update
            checked_out = True

        update.state = BranchUpdateState.PULLING
        logger.debug(f"{self.full_name}: pulling {branch.name} ({branch.behind} behind)")
        try:
            self.pull(["--rebase"])
        except PullError as e:
            update.state = BranchUpdateState.FAILED
            update.error = e
            if checked_out:
                self._restore_after_failed_pull(original_branch)
            return update

        update.state = BranchUpdateState.COMPLETED
        return update

    def _restore_after_failed_pull(self, branch_name: str) -> None:
        # A failed rebase can leave the tree mid-operation; get back to where we were
        try:
            self.checkout(branch_name)
        except CheckoutError as e:
            logger.warning(f"{self.full_name}: could not return to {branch_name} after failed pull: {e}")

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def prune_branches(self, gone_only: bool, merged_only: bool, dry_run: bool) -> List[str]:
        """Delete local branches whose remote is gone and/or that are merged.

        The current branch and the default branch are never pruned.

        Returns:
            Names of the pruned branches (or those that would be pruned on a
            dry run)

        Raises:
            StatusError, PathNotFoundError: status could not be derived
            DefaultBranchError: the default branch could not be determined
            DeleteBranchError: a deletion failed; later deletions are skipped
        """
        status = self.status()
        candidates = self.identify_branches_to_prune(status, gone_only, merged_only)

        if dry_run or not candidates:
            return candidates

        deleted: List[str] = []
        for name in candidates:
            try:
                self._run(["branch", "-D", name])
            except CommandError as e:
                raise DeleteBranchError(
                    self.full_name, name, str(e), candidates=candidates, deleted=deleted
                ) from e
            logger.info(f"{self.full_name}: deleted branch {name}")
            deleted.append(name)
        return candidates

    def identify_branches_to_prune(
        self, status: RepositoryStatus, gone_only: bool, merged_only: bool
    ) -> List[str]:
        """Select prune candidates from ``status`` without deleting anything."""
        default_branch = self.get_default_branch()
        eligible = [
            branch for branch in status.branches
            if not branch.current and branch.name != default_branch
        ]

        merged = set()
        if merged_only and eligible:
            merged = set(self.get_merged_branches(default_branch))

        return [
            branch.name for branch in eligible
            if (gone_only and branch.remote_gone) or (merged_only and branch.name in merged)
        ]

    def get_merged_branches(self, target: str) -> List[str]:
        """Local branches fully merged into ``target``."""
        try:
            output = self._run_text(["branch", "--merged", target])
        except CommandError as e:
            raise GitOperationError(
                self.full_name, target, str(e), operation="list_merged_branches"
            ) from e

        merged = []
        for line in output.splitlines():
            name = line.strip()
            if name.startswith("* "):
                name = name[2:].strip()
            if name:
                merged.append(name)
        return merged

    def get_default_branch(self) -> str:
        """Return ``main`` or ``master`` if present, else the current branch."""
        for candidate in DEFAULT_BRANCH_CANDIDATES:
            try:
                self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{candidate}"])
            except CommandError:
                continue
            return candidate

        try:
            current = self.get_current_branch()
        except GitOperationError as e:
            raise DefaultBranchError(self.full_name, message=str(e)) from e
        logger.debug(f"{self.full_name}: no main/master, using current branch {current} as default")
        return current

    # ------------------------------------------------------------------
    # Thin git wrappers
    # ------------------------------------------------------------------

    def fetch(self, args: Optional[Sequence[str]] = None) -> None:
        try:
            self._run(["fetch", *(args or [])], stream=True)
        except CommandError as e:
            raise FetchError(self.full_name, message=str(e)) from e

    def pull(self, args: Optional[Sequence[str]] = None) -> None:
        try:
            self._run(["pull", *(args or [])], stream=True)
        except CommandError as e:
            raise PullError(self.full_name, message=str(e)) from e

    def checkout(self, *branch_or_args: str) -> None:
        try:
            self._run(["checkout", *branch_or_args], stream=True)
        except CommandError as e:
            branch = branch_or_args[-1] if branch_or_args else None
            raise CheckoutError(self.full_name, branch, str(e)) from e

    def get_current_branch(self) -> str:
        try:
            return self._run_text(["rev-parse", "--abbrev-ref", "HEAD"]).strip()
        except CommandError as e:
            raise GitOperationError(
                self.full_name, message=str(e), operation="current_branch"
            ) from e

    def get_head_commit(self) -> str:
        try:
            return self._run_text(["rev-parse", "HEAD"]).strip()
        except CommandError as e:
            raise GitOperationError(
                self.full_name, message=str(e), operation="head_commit"
            ) from e

    def get_remote_branches(self) -> List[str]:
        """Remote branch names with the remote prefix removed (``origin/x`` -> ``x``)."""
        try:
            output = self._run_text(["branch", "-r"])
        except CommandError as e:
            raise GitOperationError(
                self.full_name, message=str(e), operation="remote_branches"
            ) from e

        branches = []
        for line in output.splitlines():
            line = line.strip()
            if not line or " -> " in line:
                continue
            _, sep, name = line.partition("/")
            if sep and name != "HEAD":
                branches.append(name)
        return branches


def parse_url(url: str, executor: Optional[CommandExecutor] = None) -> Repository:
    """Build a (not yet cloned) Repository from a remote URL.

    Raises:
        InvalidURLFormatError, UnsupportedURLFormatError
    """
    host, organization, name = split_url(url)
    return Repository(host=host, organization=organization, name=name, executor=executor)
