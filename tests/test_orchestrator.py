"""Tests for concurrent orchestration over repositories"""

import time

import pytest

from conftest import FakeExecutor
from gitm.exceptions import DeleteBranchError, PathNotFoundError, UncommittedChangesError
from gitm.models.status import StatusResult
from gitm.services.git.repository import Repository
from gitm.services.orchestrator import (
    RepositoryOrchestrator,
    prune_for,
    summarize_prune,
    summarize_status,
    summarize_update,
)


class SlowExecutor(FakeExecutor):
    """FakeExecutor that delays every call by a fixed amount."""

    def __init__(self, delay, responses=None):
        super().__init__(responses)
        self.delay = delay

    def execute(self, repo_path, stream, args):
        time.sleep(self.delay)
        return super().execute(repo_path, stream, args)


class CrashingExecutor(FakeExecutor):
    def execute(self, repo_path, stream, args):
        raise RuntimeError("unexpected")


def make_repo(root, name, executor, listing="* main abc [origin/main] m\n"):
    path = root / "github.com" / "acme" / name
    path.mkdir(parents=True)
    executor.set(("branch", "-vv"), listing)
    executor.set(("rev-parse", "--abbrev-ref", "HEAD"), "main\n")
    return Repository(host="github.com", organization="acme", name=name, path=str(path), executor=executor)


class TestOrdering:
    """Test that results come back in input order."""

    def test_results_follow_input_order(self, temp_dir):
        repos = [
            make_repo(temp_dir, "slow", SlowExecutor(0.2)),
            make_repo(temp_dir, "medium", SlowExecutor(0.1)),
            make_repo(temp_dir, "fast", SlowExecutor(0.0)),
        ]
        finished = []

        orchestrator = RepositoryOrchestrator(workers=3, on_result=lambda repo: finished.append(repo.name))
        results = orchestrator.status_all(repos)

        assert [r.repository.name for r in results] == ["slow", "medium", "fast"]
        assert finished[0] == "fast"

    @pytest.mark.parametrize("sequential", [True, False])
    def test_one_result_per_repository(self, temp_dir, sequential):
        repos = [make_repo(temp_dir, f"repo{i}", FakeExecutor()) for i in range(5)]

        results = RepositoryOrchestrator(sequential=sequential).status_all(repos)

        assert [r.repository for r in results] == repos
        assert all(r.succeeded for r in results)

    def test_empty_input(self):
        assert RepositoryOrchestrator().status_all([]) == []


class TestFailureIsolation:
    """Test that one repository failing does not affect the others."""

    def test_status_failure_is_captured(self, temp_dir):
        ok = make_repo(temp_dir, "ok", FakeExecutor())
        missing = Repository(name="missing", path=str(temp_dir / "missing"), executor=FakeExecutor())

        results = RepositoryOrchestrator(workers=2).status_all([missing, ok])

        assert isinstance(results[0].error, PathNotFoundError)
        assert results[1].succeeded

    def test_unexpected_exception_is_captured(self, temp_dir):
        crashing = make_repo(temp_dir, "crash", CrashingExecutor())
        ok = make_repo(temp_dir, "ok", FakeExecutor())

        results = RepositoryOrchestrator(workers=2).status_all([crashing, ok])

        assert isinstance(results[0].error, RuntimeError)
        assert results[1].succeeded

    def test_update_dirty_repository_is_skipped(self, temp_dir):
        dirty_executor = FakeExecutor({("status", "--porcelain"): b" M file\n"})
        dirty = make_repo(temp_dir, "dirty", dirty_executor)
        behind = make_repo(temp_dir, "behind", FakeExecutor(), "* main abc [origin/main: behind 1] m\n")

        results = RepositoryOrchestrator(workers=2).update_all([dirty, behind])

        assert isinstance(results[0].error, UncommittedChangesError)
        assert results[1].updated_branches == ["main"]

        summary = summarize_update(results)
        assert (summary.total, summary.succeeded, summary.failed, summary.with_issues) == (2, 1, 1, 1)

    def test_prune_delete_failure_keeps_deleted_branches(self, temp_dir):
        executor = FakeExecutor()
        repo = make_repo(
            temp_dir, "repo", executor,
            "* main abc [origin/main] m\n  a 1 [origin/a: gone] x\n  b 2 [origin/b: gone] x\n",
        )
        executor.fail(("branch", "-D", "b"))

        result = prune_for(repo, gone_only=True, merged_only=False, dry_run=False)

        assert isinstance(result.error, DeleteBranchError)
        assert result.pruned_branches == ["a"]


class TestSummaries:
    """Test aggregate summaries."""

    def test_status_summary_all_clean(self, temp_dir):
        repos = [make_repo(temp_dir, f"repo{i}", FakeExecutor()) for i in range(3)]

        summary = summarize_status(RepositoryOrchestrator().status_all(repos))

        assert summary.total == 3
        assert summary.succeeded == 3
        assert summary.all_clean is True

    def test_status_summary_with_issues(self, temp_dir):
        clean = make_repo(temp_dir, "clean", FakeExecutor())
        gone = make_repo(temp_dir, "gone", FakeExecutor(), "* main abc [origin/main] m\n  x 1 [origin/x: gone] x\n")
        failed = StatusResult(repository=clean, error=PathNotFoundError("/nowhere"))

        results = RepositoryOrchestrator(sequential=True).status_all([clean, gone]) + [failed]
        summary = summarize_status(results)

        assert summary.with_issues == 1
        assert summary.failed == 1
        assert summary.all_clean is False

    def test_prune_summary_counts_pruned_repositories(self, temp_dir):
        repo = make_repo(temp_dir, "repo", FakeExecutor(), "* main abc [origin/main] m\n  x 1 [origin/x: gone] x\n")
        clean = make_repo(temp_dir, "clean", FakeExecutor())

        results = RepositoryOrchestrator().prune_all([repo, clean], gone_only=True, merged_only=False, dry_run=True)
        summary = summarize_prune(results)

        assert results[0].pruned_branches == ["x"]
        assert results[0].dry_run is True
        assert summary.with_issues == 1
        assert summary.failed == 0
