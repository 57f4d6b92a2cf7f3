"""Discovery of working trees on disk and filtering by identity."""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from gitm.exceptions import DiscoveryError
from gitm.logging_config import get_logger
from gitm.services.executor import CommandExecutor
from gitm.services.git.repository import Repository

logger = get_logger(__name__)

GIT_DIR = ".git"


@dataclass
class RepositoryFilter:
    """Criteria selecting which repositories an operation runs against.

    Empty strings mean "no constraint"; non-empty values must match exactly.
    """
    host: str = ""
    organization: str = ""
    name: str = ""
    path: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.host or self.organization or self.name)

    def matches(self, repository: Repository) -> bool:
        if self.host and repository.host != self.host:
            return False
        if self.organization and repository.organization != self.organization:
            return False
        if self.name and repository.name != self.name:
            return False
        return True


def is_git_repo(path: str) -> bool:
    """True if ``path`` contains a ``.git`` directory."""
    return os.path.isdir(os.path.join(path, GIT_DIR))


def repository_from_path(path: str, executor: Optional[CommandExecutor] = None) -> Repository:
    """Rebuild a repository's identity from its ``<host>/<org>/<name>`` path.

    Only the last three path components are considered, and the host must
    contain a dot to look like a domain. Anything else yields a bare
    repository carrying just its name and path.
    """
    abs_path = os.path.abspath(path)
    parts = abs_path.split(os.sep)

    if len(parts) < 3:
        return Repository(name=os.path.basename(abs_path), path=abs_path, executor=executor)

    host, organization, name = parts[-3], parts[-2], parts[-1]
    if "." not in host:
        return Repository(name=name, path=abs_path, executor=executor)

    return Repository(host=host, organization=organization, name=name, path=abs_path, executor=executor)


def walk_repositories(root: str, executor: Optional[CommandExecutor] = None) -> List[Repository]:
    """Find working trees under ``root`` without descending into them.

    Raises:
        DiscoveryError: ``root`` (or a directory below it) cannot be read
    """
    def _raise(error: OSError):
        raise DiscoveryError(root, str(error)) from error

    repositories = []
    for dirpath, dirnames, _ in os.walk(root, onerror=_raise):
        if is_git_repo(dirpath):
            repositories.append(repository_from_path(dirpath, executor))
            dirnames[:] = []  # nested working trees belong to this one
            continue
        dirnames.sort()

    logger.debug(f"Found {len(repositories)} repositories under {root}")
    return repositories


def filter_repositories(
    repositories: Iterable[Repository], filters: Optional[RepositoryFilter]
) -> List[Repository]:
    """Keep repositories matching every non-empty filter field."""
    repositories = list(repositories)
    if filters is None or filters.is_empty:
        return repositories
    return [repository for repository in repositories if filters.matches(repository)]


def find_repositories(
    root_dir: str,
    filters: Optional[RepositoryFilter] = None,
    executor: Optional[CommandExecutor] = None,
) -> List[Repository]:
    """Find the repositories an operation should run against.

    With ``filters.path`` set, that path is used instead of ``root_dir``: if
    it is itself a working tree it is the only repository, otherwise its
    subtree is searched.

    ``root_dir`` is used as given (see ``Config.root_path`` for the expanded
    configured root).
    """
    filters = filters or RepositoryFilter()

    if filters.path:
        path = os.path.expanduser(filters.path)
        if is_git_repo(path):
            repositories = [repository_from_path(path, executor)]
        else:
            repositories = walk_repositories(path, executor)
    else:
        repositories = walk_repositories(root_dir, executor)

    return filter_repositories(repositories, filters)
