"""Fan repository operations out over a thread pool and collect the results."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from gitm.exceptions import DeleteBranchError, GitmError
from gitm.logging_config import get_logger
from gitm.models.status import OperationSummary, PruneResult, StatusResult, UpdateResult
from gitm.services.git.repository import Repository
from gitm.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

R = TypeVar("R")


def status_for(repository: Repository) -> StatusResult:
    """Status of one repository, with failures captured in the result."""
    try:
        return StatusResult(repository=repository, status=repository.status())
    except GitmError as e:
        logger.debug(f"{repository.full_name}: status failed: {e}")
        return StatusResult(repository=repository, error=e)


def update_for(repository: Repository, fetch_only: bool, prune: bool) -> UpdateResult:
    """Update one repository, with failures captured in the result."""
    try:
        return repository.update(fetch_only=fetch_only, prune=prune)
    except GitmError as e:
        logger.debug(f"{repository.full_name}: update failed: {e}")
        return UpdateResult(repository=repository, error=e)


def prune_for(repository: Repository, gone_only: bool, merged_only: bool, dry_run: bool) -> PruneResult:
    """Prune one repository, with failures captured in the result."""
    try:
        pruned = repository.prune_branches(gone_only, merged_only, dry_run)
    except DeleteBranchError as e:
        return PruneResult(repository=repository, pruned_branches=e.deleted, error=e, dry_run=dry_run)
    except GitmError as e:
        logger.debug(f"{repository.full_name}: prune failed: {e}")
        return PruneResult(repository=repository, error=e, dry_run=dry_run)
    return PruneResult(repository=repository, pruned_branches=pruned, dry_run=dry_run)


class RepositoryOrchestrator:
    """Runs one operation per repository concurrently.

    Results always come back in the order of the input list, regardless of
    completion order.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        sequential: bool = False,
        on_result: Optional[Callable[[Repository], None]] = None,
    ):
        """
        Args:
            workers: Maximum pool size (None = auto-detect)
            sequential: Run in the calling thread, one repository at a time
            on_result: Called with each repository as its operation finishes
        """
        self.workers = workers
        self.sequential = sequential
        self.on_result = on_result

    def _execute_parallel(
        self,
        operation: Callable[[Repository], R],
        repositories: Sequence[Repository],
        on_crash: Callable[[Repository, Exception], R],
    ) -> List[R]:
        results: Dict[str, R] = {}

        def _record(repository: Repository, result: R) -> None:
            results[repository.key] = result
            if self.on_result is not None:
                self.on_result(repository)

        if self.sequential or len(repositories) <= 1:
            for repository in repositories:
                try:
                    result = operation(repository)
                except Exception as e:
                    logger.exception(f"Unexpected failure for {repository.full_name}")
                    result = on_crash(repository, e)
                _record(repository, result)
        else:
            workers = get_optimal_worker_count(self.workers, task_count=len(repositories))
            logger.debug(f"Running {len(repositories)} repositories on {workers} workers")
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gitm") as executor:
                futures = {executor.submit(operation, repo): repo for repo in repositories}
                for future in as_completed(futures):
                    repository = futures[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.exception(f"Unexpected failure for {repository.full_name}")
                        result = on_crash(repository, e)
                    _record(repository, result)

        ordered = []
        for repository in repositories:
            if repository.key not in results:
                logger.warning(f"No result found for {repository.key}")
                continue
            ordered.append(results[repository.key])
        return ordered

    def status_all(self, repositories: Sequence[Repository]) -> List[StatusResult]:
        return self._execute_parallel(
            status_for,
            repositories,
            lambda repo, e: StatusResult(repository=repo, error=e),
        )

    def update_all(
        self, repositories: Sequence[Repository], fetch_only: bool = False, prune: bool = False
    ) -> List[UpdateResult]:
        return self._execute_parallel(
            lambda repo: update_for(repo, fetch_only, prune),
            repositories,
            lambda repo, e: UpdateResult(repository=repo, error=e),
        )

    def prune_all(
        self,
        repositories: Sequence[Repository],
        gone_only: bool,
        merged_only: bool,
        dry_run: bool,
    ) -> List[PruneResult]:
        return self._execute_parallel(
            lambda repo: prune_for(repo, gone_only, merged_only, dry_run),
            repositories,
            lambda repo, e: PruneResult(repository=repo, error=e, dry_run=dry_run),
        )


def summarize_status(results: Sequence[StatusResult]) -> OperationSummary:
    summary = OperationSummary(total=len(results))
    for result in results:
        if result.error is not None:
            summary.failed += 1
            continue
        summary.succeeded += 1
        if result.status.has_issues:
            summary.with_issues += 1
    return summary


def summarize_update(results: Sequence[UpdateResult]) -> OperationSummary:
    summary = OperationSummary(total=len(results))
    for result in results:
        if result.has_errors:
            summary.failed += 1
        else:
            summary.succeeded += 1
        if result.updated_branches:
            summary.with_issues += 1
    return summary


def summarize_prune(results: Sequence[PruneResult]) -> OperationSummary:
    summary = OperationSummary(total=len(results))
    for result in results:
        if result.error is not None:
            summary.failed += 1
        else:
            summary.succeeded += 1
        if result.pruned_branches:
            summary.with_issues += 1
    return summary
