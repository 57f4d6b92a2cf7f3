"""Status and operation result models."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TYPE_CHECKING

from gitm.models.branch import BranchInfo, BranchUpdateState

if TYPE_CHECKING:
    from gitm.services.git.repository import Repository


@dataclass
class RepositoryStatus:
    """Snapshot of a repository's working tree, branches and stashes.

    The ``has_branches_*`` flags are derived from ``branches`` on every
    access, so they always agree with the branch list.
    """
    repository: "Repository"
    has_uncommitted_changes: bool = False
    uncommitted_changes: List[str] = field(default_factory=list)
    branches: List[BranchInfo] = field(default_factory=list)
    stash_count: int = 0

    @property
    def current_branch(self) -> str:
        for branch in self.branches:
            if branch.current:
                return branch.name
        return ""

    @property
    def has_branches_without_remote(self) -> bool:
        return any(branch.no_remote_tracking for branch in self.branches)

    @property
    def has_branches_with_remote_gone(self) -> bool:
        return any(branch.remote_gone for branch in self.branches)

    @property
    def has_branches_behind_remote(self) -> bool:
        return any(branch.behind > 0 for branch in self.branches)

    @property
    def has_issues(self) -> bool:
        return (
            self.has_uncommitted_changes
            or self.has_branches_without_remote
            or self.has_branches_with_remote_gone
            or self.has_branches_behind_remote
        )

    def branches_where(self, predicate) -> List[BranchInfo]:
        """Branches matching ``predicate``, in listing order."""
        return [branch for branch in self.branches if predicate(branch)]


@dataclass
class StatusResult:
    """Outcome of a status query for one repository."""
    repository: "Repository"
    status: Optional[RepositoryStatus] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def has_issues(self) -> bool:
        return self.error is not None or (self.status is not None and self.status.has_issues)


@dataclass
class BranchUpdateResult:
    """Outcome of updating a single branch."""
    branch: BranchInfo
    error: Optional[Exception] = None
    state: BranchUpdateState = BranchUpdateState.PENDING


@dataclass
class UpdateResult:
    """Outcome of updating one repository.

    ``error`` is set when the update stopped before any branch was touched
    (fetch failure, dirty tree). ``restore_error`` is set when the originally
    checked-out branch could not be restored afterwards.
    """
    repository: "Repository"
    branch_results: Dict[str, BranchUpdateResult] = field(default_factory=dict)
    error: Optional[Exception] = None
    restore_error: Optional[Exception] = None

    @property
    def has_errors(self) -> bool:
        return (
            self.error is not None
            or self.restore_error is not None
            or any(result.error is not None for result in self.branch_results.values())
        )

    @property
    def succeeded(self) -> bool:
        return not self.has_errors

    @property
    def updated_branches(self) -> List[str]:
        return [
            name for name, result in self.branch_results.items()
            if result.state == BranchUpdateState.COMPLETED
        ]


@dataclass
class PruneResult:
    """Outcome of pruning branches in one repository."""
    repository: "Repository"
    pruned_branches: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class OperationSummary:
    """Aggregate counts over the results of one orchestration run."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    with_issues: int = 0  # status: repositories with issues; update/prune: repositories changed

    @property
    def all_clean(self) -> bool:
        """True when every repository succeeded and none needs attention."""
        return self.failed == 0 and self.with_issues == 0
