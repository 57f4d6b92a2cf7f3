"""Git-related services for gitm."""

from .branch_parser import parse_branch_line, parse_branch_listing
from .discovery import (
    RepositoryFilter,
    filter_repositories,
    find_repositories,
    is_git_repo,
    repository_from_path,
)
from .github import list_github_repositories
from .repository import Repository, parse_url
from .url_parser import split_url

__all__ = [
    "Repository",
    "RepositoryFilter",
    "filter_repositories",
    "find_repositories",
    "is_git_repo",
    "list_github_repositories",
    "parse_branch_line",
    "parse_branch_listing",
    "parse_url",
    "repository_from_path",
    "split_url",
]
