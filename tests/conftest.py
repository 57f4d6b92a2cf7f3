"""Pytest fixtures for gitm tests"""
import tempfile
from pathlib import Path
from typing import Dict, List, Tuple, Union

import git
import pytest

from gitm.exceptions import CommandError
from gitm.services.git.repository import Repository


Response = Union[bytes, str, Exception, List[Union[bytes, str, Exception]]]


class FakeExecutor:
    """Scripted stand-in for the git executor.

    Responses are keyed by the argument tuple. A list is consumed one entry
    per call (the last entry repeats). Exceptions are raised. Unscripted
    commands succeed with empty output.
    """

    def __init__(self, responses: Dict[Tuple[str, ...], Response] = None):
        self.responses = dict(responses or {})
        self.calls: List[Tuple[str, bool, Tuple[str, ...]]] = []

    def set(self, args, response: Response) -> None:
        self.responses[tuple(args)] = response

    def fail(self, args, stderr: str = "boom", status: int = 1) -> None:
        self.set(args, CommandError(["git", *args], status, stderr))

    def execute(self, repo_path, stream, args):
        key = tuple(args)
        self.calls.append((repo_path, stream, key))

        response = self.responses.get(key, b"")
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            response = response.encode("utf-8")
        return b"" if stream else response

    @property
    def commands(self) -> List[Tuple[str, ...]]:
        return [args for _, _, args in self.calls]

    def called(self, *args) -> bool:
        return tuple(args) in self.commands

    def commands_starting_with(self, *prefix) -> List[Tuple[str, ...]]:
        return [args for args in self.commands if args[:len(prefix)] == prefix]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def fake_repo(temp_dir, fake_executor):
    """A Repository whose working tree exists but whose git calls are scripted."""
    path = temp_dir / "github.com" / "acme" / "widgets"
    path.mkdir(parents=True)
    return Repository(
        host="github.com",
        organization="acme",
        name="widgets",
        path=str(path),
        executor=fake_executor,
    )


def init_repo(path: Path) -> git.Repo:
    """Create a real Git repository with one commit on main."""
    path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(path)

    # Configure git user for commits
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")

    readme = path / "README.md"
    readme.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")
    repo.git.branch("-M", "main")
    return repo


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo = init_repo(temp_dir / "github.com" / "test" / "test-repo")
    yield repo
    repo.close()


@pytest.fixture
def cloned_repo(temp_dir):
    """A real clone of a bare 'origin' with tracking branches.

    Layout: origin has main, feature and old; the clone tracks all three,
    then ``old`` is deleted on origin so it shows as gone after a fetch.
    """
    seed = init_repo(temp_dir / "seed")
    seed.git.checkout("-b", "feature")
    (temp_dir / "seed" / "feature.txt").write_text("feature\n")
    seed.index.add(["feature.txt"])
    seed.index.commit("Add feature")
    seed.git.checkout("main")
    seed.git.branch("old")

    origin_path = temp_dir / "origin.git"
    origin = git.Repo.clone_from(str(temp_dir / "seed"), str(origin_path), bare=True)

    clone_path = temp_dir / "root" / "example.com" / "team" / "project"
    clone = git.Repo.clone_from(str(origin_path), str(clone_path))
    with clone.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
    clone.git.branch("--track", "feature", "origin/feature")
    clone.git.branch("--track", "old", "origin/old")

    origin.git.branch("-D", "old")
    clone.git.fetch("--prune")

    yield clone

    clone.close()
    origin.close()
    seed.close()
