"""Tests for Repository status, update, prune and clone"""

import os

import pytest

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
from gitm.models.branch import BranchUpdateState
from gitm.services.git.repository import Repository

CURRENT = ("rev-parse", "--abbrev-ref", "HEAD")
PORCELAIN = ("status", "--porcelain")
BRANCHES = ("branch", "-vv")
STASHES = ("stash", "list")
SHOW_MAIN = ("show-ref", "--verify", "--quiet", "refs/heads/main")
SHOW_MASTER = ("show-ref", "--verify", "--quiet", "refs/heads/master")


def _error(*args):
    return CommandError(["git", *args], 1, "boom")


class TestStatus:
    """Test status aggregation."""

    def test_dirty_tree_and_branch_behind(self, fake_repo, fake_executor):
        """One changed file and one branch behind by 3 raises every relevant flag."""
        fake_executor.set(PORCELAIN, " M file.txt\n")
        fake_executor.set(BRANCHES, "* main abc [origin/main: behind 3] msg\n")

        status = fake_repo.status()

        assert status.has_uncommitted_changes is True
        assert status.uncommitted_changes == [" M file.txt"]
        assert status.has_branches_behind_remote is True
        assert status.has_issues is True
        assert status.current_branch == "main"

    def test_clean_repository(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, "* main abc [origin/main] msg\n")

        status = fake_repo.status()

        assert status.has_uncommitted_changes is False
        assert status.has_issues is False
        assert status.stash_count == 0

    def test_flags_are_or_over_branches(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "* main abc [origin/main] m\n"
            "  local def l\n"
            "  old 123 [origin/old: gone] o\n"
        ))

        status = fake_repo.status()

        assert status.has_branches_without_remote == any(b.no_remote_tracking for b in status.branches)
        assert status.has_branches_with_remote_gone == any(b.remote_gone for b in status.branches)
        assert status.has_branches_without_remote is True
        assert status.has_branches_with_remote_gone is True
        assert status.has_branches_behind_remote is False

    def test_stash_count(self, fake_repo, fake_executor):
        fake_executor.set(STASHES, "stash@{0}: WIP on main\nstash@{1}: WIP on main\n")

        assert fake_repo.status().stash_count == 2

    def test_missing_path(self, fake_executor):
        repo = Repository(name="gone", path="/definitely/not/here", executor=fake_executor)

        with pytest.raises(PathNotFoundError):
            repo.status()
        assert fake_executor.calls == []

    @pytest.mark.parametrize("failing", [PORCELAIN, BRANCHES, STASHES])
    def test_query_failure_wraps_status_error(self, fake_repo, fake_executor, failing):
        fake_executor.set(failing, _error(*failing))

        with pytest.raises(StatusError) as exc_info:
            fake_repo.status()
        assert "boom" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, CommandError)

    def test_commands_are_scoped_to_the_repository(self, fake_repo, fake_executor):
        fake_repo.status()

        assert {path for path, _, _ in fake_executor.calls} == {fake_repo.path}
        assert all(stream is False for _, stream, _ in fake_executor.calls)


class TestUpdate:
    """Test updating tracked branches."""

    LISTING = (
        "* main abc [origin/main: behind 2] m\n"
        "  feature def [origin/feature: behind 3] f\n"
        "  local 123 l\n"
        "  old 456 [origin/old: gone] o\n"
        "  synced 789 [origin/synced] s\n"
    )

    @pytest.fixture
    def scripted(self, fake_repo, fake_executor):
        fake_executor.set(CURRENT, "main\n")
        fake_executor.set(BRANCHES, self.LISTING)
        return fake_repo

    def test_updates_branches_behind_and_restores_original(self, scripted, fake_executor):
        result = scripted.update()

        assert result.branch_results["main"].state == BranchUpdateState.COMPLETED
        assert result.branch_results["feature"].state == BranchUpdateState.COMPLETED
        assert result.branch_results["synced"].state == BranchUpdateState.UP_TO_DATE
        assert "local" not in result.branch_results
        assert "old" not in result.branch_results
        assert result.updated_branches == ["main", "feature"]
        assert result.succeeded is True

        assert fake_executor.called("fetch", "--all")
        assert fake_executor.commands_starting_with("checkout") == [
            ("checkout", "feature"),
            ("checkout", "main"),
        ]
        assert fake_executor.commands[-1] == ("checkout", "main")
        assert len(fake_executor.commands_starting_with("pull", "--rebase")) == 2

    def test_prune_flag_prunes_while_fetching(self, scripted, fake_executor):
        scripted.update(prune=True)

        assert fake_executor.called("fetch", "--all", "--prune")

    def test_fetch_and_pull_are_streamed(self, scripted, fake_executor):
        scripted.update()

        streamed = [args for _, stream, args in fake_executor.calls if stream]
        assert ("fetch", "--all") in streamed
        assert ("pull", "--rebase") in streamed

    def test_fetch_only(self, scripted, fake_executor):
        result = scripted.update(fetch_only=True)

        assert result.branch_results == {}
        assert fake_executor.called("fetch", "--all")
        assert fake_executor.commands_starting_with("checkout") == []
        assert fake_executor.commands_starting_with("pull") == []

    def test_dirty_tree_refuses_update(self, scripted, fake_executor):
        fake_executor.set(PORCELAIN, " M file.txt\n")

        with pytest.raises(UncommittedChangesError) as exc_info:
            scripted.update()

        assert not isinstance(exc_info.value, GitOperationError)
        assert exc_info.value.changes == [" M file.txt"]
        assert fake_executor.commands_starting_with("checkout") == []
        assert fake_executor.commands_starting_with("pull") == []

    def test_fetch_failure(self, scripted, fake_executor):
        fake_executor.set(("fetch", "--all"), _error("fetch", "--all"))

        with pytest.raises(FetchError):
            scripted.update()
        assert fake_executor.commands_starting_with("pull") == []

    def test_current_branch_failure(self, scripted, fake_executor):
        fake_executor.set(CURRENT, _error(*CURRENT))

        with pytest.raises(GitOperationError) as exc_info:
            scripted.update()
        assert exc_info.value.operation == "current_branch"

    def test_failed_pull_is_recorded_and_original_restored(self, scripted, fake_executor):
        """A failing pull on one branch does not stop the others."""
        fake_executor.set(("pull", "--rebase"), [_error("pull"), b""])

        result = scripted.update()

        main = result.branch_results["main"]
        assert main.state == BranchUpdateState.FAILED
        assert isinstance(main.error, PullError)
        assert result.branch_results["feature"].state == BranchUpdateState.COMPLETED
        assert result.has_errors is True
        assert fake_executor.commands[-1] == ("checkout", "main")

    def test_failed_pull_on_other_branch_returns_to_original(self, scripted, fake_executor):
        fake_executor.set(("pull", "--rebase"), [b"", _error("pull")])

        result = scripted.update()

        assert result.branch_results["feature"].state == BranchUpdateState.FAILED
        checkouts = fake_executor.commands_starting_with("checkout")
        # into feature, back after the failure, and the final restore
        assert checkouts == [("checkout", "feature"), ("checkout", "main"), ("checkout", "main")]

    def test_failed_checkout_marks_branch_failed(self, scripted, fake_executor):
        fake_executor.set(("checkout", "feature"), _error("checkout", "feature"))

        result = scripted.update()

        feature = result.branch_results["feature"]
        assert feature.state == BranchUpdateState.FAILED
        assert isinstance(feature.error, CheckoutError)
        assert len(fake_executor.commands_starting_with("pull")) == 1

    def test_restore_failure_is_reported(self, scripted, fake_executor):
        fake_executor.set(("checkout", "main"), _error("checkout", "main"))

        result = scripted.update()

        assert isinstance(result.restore_error, CheckoutError)
        assert result.branch_results["feature"].state == BranchUpdateState.COMPLETED
        assert result.succeeded is False

    def test_detached_head_is_restored_by_commit(self, scripted, fake_executor):
        fake_executor.set(CURRENT, "HEAD\n")
        fake_executor.set(("rev-parse", "HEAD"), "1a2b3c4d\n")

        result = scripted.update()

        assert result.updated_branches == ["main", "feature"]
        assert fake_executor.commands_starting_with("checkout") == [
            ("checkout", "main"),
            ("checkout", "feature"),
            ("checkout", "1a2b3c4d"),
        ]
        assert result.restore_error is None


class TestPrune:
    """Test branch pruning."""

    def test_gone_only_dry_run(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, "* main\n  feature [origin/feature]\n  old [origin/old: gone]")

        pruned = fake_repo.prune_branches(gone_only=True, merged_only=False, dry_run=True)

        assert pruned == ["old"]
        assert fake_executor.commands_starting_with("branch", "-D") == []

    def test_dry_run_returns_same_candidates_as_real_run(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "* main abc [origin/main] m\n"
            "  a 1 [origin/a: gone] x\n"
            "  b 2 [origin/b: gone] x\n"
        ))

        preview = fake_repo.prune_branches(gone_only=True, merged_only=False, dry_run=True)
        pruned = fake_repo.prune_branches(gone_only=True, merged_only=False, dry_run=False)

        assert preview == pruned == ["a", "b"]
        assert fake_executor.commands_starting_with("branch", "-D") == [
            ("branch", "-D", "a"),
            ("branch", "-D", "b"),
        ]

    def test_merged_only(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "* main abc [origin/main] m\n"
            "  feature def [origin/feature] f\n"
            "  done 123 [origin/done] d\n"
            "  old 456 [origin/old: gone] o\n"
        ))
        fake_executor.set(("branch", "--merged", "main"), "* main\n  done\n")

        pruned = fake_repo.prune_branches(gone_only=False, merged_only=True, dry_run=True)

        assert pruned == ["done"]

    def test_both_policies_in_listing_order(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "* main abc [origin/main] m\n"
            "  old 456 [origin/old: gone] o\n"
            "  feature def [origin/feature] f\n"
            "  done 123 [origin/done] d\n"
        ))
        fake_executor.set(("branch", "--merged", "main"), "* main\n  done\n")

        pruned = fake_repo.prune_branches(gone_only=True, merged_only=True, dry_run=True)

        assert pruned == ["old", "done"]

    def test_current_and_default_are_never_pruned(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "  main abc [origin/main: gone] m\n"
            "* topic def [origin/topic: gone] t\n"
            "  stale 123 [origin/stale: gone] s\n"
        ))
        fake_executor.set(("branch", "--merged", "main"), "  main\n* topic\n  stale\n")

        pruned = fake_repo.prune_branches(gone_only=True, merged_only=True, dry_run=True)

        assert pruned == ["stale"]

    def test_default_falls_back_to_master(self, fake_repo, fake_executor):
        fake_executor.set(SHOW_MAIN, _error(*SHOW_MAIN))

        assert fake_repo.get_default_branch() == "master"

    def test_default_falls_back_to_current_branch(self, fake_repo, fake_executor):
        """Without main or master the current branch is the merge target."""
        fake_executor.set(SHOW_MAIN, _error(*SHOW_MAIN))
        fake_executor.set(SHOW_MASTER, _error(*SHOW_MASTER))
        fake_executor.set(CURRENT, "develop\n")
        fake_executor.set(BRANCHES, (
            "* develop abc [origin/develop] d\n"
            "  merged 123 [origin/merged] m\n"
        ))
        fake_executor.set(("branch", "--merged", "develop"), "* develop\n  merged\n")

        pruned = fake_repo.prune_branches(gone_only=False, merged_only=True, dry_run=True)

        assert fake_repo.get_default_branch() == "develop"
        assert pruned == ["merged"]
        assert fake_executor.called("branch", "--merged", "develop")

    def test_default_branch_error(self, fake_repo, fake_executor):
        fake_executor.set(SHOW_MAIN, _error(*SHOW_MAIN))
        fake_executor.set(SHOW_MASTER, _error(*SHOW_MASTER))
        fake_executor.set(CURRENT, _error(*CURRENT))

        with pytest.raises(DefaultBranchError):
            fake_repo.get_default_branch()

    def test_no_merged_lookup_without_candidates(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, "* main abc [origin/main] m\n")

        assert fake_repo.prune_branches(gone_only=False, merged_only=True, dry_run=True) == []
        assert fake_executor.commands_starting_with("branch", "--merged") == []

    def test_delete_failure_stops_and_reports_progress(self, fake_repo, fake_executor):
        fake_executor.set(BRANCHES, (
            "* main abc [origin/main] m\n"
            "  a 1 [origin/a: gone] x\n"
            "  b 2 [origin/b: gone] x\n"
            "  c 3 [origin/c: gone] x\n"
        ))
        fake_executor.set(("branch", "-D", "b"), _error("branch", "-D", "b"))

        with pytest.raises(DeleteBranchError) as exc_info:
            fake_repo.prune_branches(gone_only=True, merged_only=False, dry_run=False)

        error = exc_info.value
        assert error.branch == "b"
        assert error.candidates == ["a", "b", "c"]
        assert error.deleted == ["a"]
        assert not fake_executor.called("branch", "-D", "c")


class TestClone:
    """Test cloning into the root layout."""

    URL = "git@github.com:acme/widgets.git"

    def test_clone_into_layout(self, temp_dir, fake_executor):
        repo = Repository(host="github.com", organization="acme", name="widgets", executor=fake_executor)
        target = os.path.join(str(temp_dir), "github.com", "acme", "widgets")

        repo.clone(str(temp_dir), self.URL, ["--recurse-submodules"])

        assert repo.path == target
        assert os.path.isdir(os.path.dirname(target))
        assert fake_executor.calls == [
            (target, True, ("clone", "--recurse-submodules", self.URL, target)),
        ]

    def test_clone_refuses_existing_target(self, temp_dir, fake_executor):
        (temp_dir / "github.com" / "acme" / "widgets").mkdir(parents=True)
        repo = Repository(host="github.com", organization="acme", name="widgets", executor=fake_executor)

        with pytest.raises(RepositoryExistsError):
            repo.clone(str(temp_dir), self.URL)
        assert fake_executor.calls == []

    def test_clone_failure(self, temp_dir, fake_executor):
        repo = Repository(host="github.com", organization="acme", name="widgets", executor=fake_executor)
        target = os.path.join(str(temp_dir), "github.com", "acme", "widgets")
        fake_executor.set(("clone", self.URL, target), _error("clone"))

        with pytest.raises(CloneError):
            repo.clone(str(temp_dir), self.URL)
        assert repo.path == ""


class TestHelpers:
    """Test the thin git wrappers."""

    def test_remote_branches_strip_remote_and_skip_head(self, fake_repo, fake_executor):
        fake_executor.set(("branch", "-r"), (
            "  origin/HEAD -> origin/main\n"
            "  origin/main\n"
            "  origin/feature/x\n"
            "  origin/fix-HEAD-handling\n"
        ))

        assert fake_repo.get_remote_branches() == ["main", "feature/x", "fix-HEAD-handling"]

    def test_merged_branches_strip_current_marker(self, fake_repo, fake_executor):
        fake_executor.set(("branch", "--merged", "main"), "* main\n  done\n\n")

        assert fake_repo.get_merged_branches("main") == ["main", "done"]

    def test_key_prefers_path(self, fake_repo, fake_executor):
        assert fake_repo.key == fake_repo.path
        assert Repository(host="h.com", organization="o", name="n", executor=fake_executor).key == "h.com/o/n"
