"""Listing of GitHub repositories for bulk cloning."""

import json
from dataclasses import dataclass
from typing import List, Optional, Protocol

from github import Auth, Github
from github.GithubException import GithubException

from gitm.exceptions import CommandError, GitHubListingError
from gitm.logging_config import get_logger
from gitm.services.executor import CommandExecutor, GhCliExecutor, GitHubCommandExecutor
from gitm.services.git.repository import Repository

logger = get_logger(__name__)

GITHUB_HOST = "github.com"
DEFAULT_LIMIT = 1000


@dataclass
class GitHubRepositoryRecord:
    """One repository as reported by GitHub."""
    name: str
    owner: str
    url: str = ""


def github_ssh_url(organization: str, name: str) -> str:
    return f"git@{GITHUB_HOST}:{organization}/{name}.git"


class RepositoryLister(Protocol):
    def list_repositories(self, owner: str, limit: int) -> List[GitHubRepositoryRecord]:
        ...


def parse_repository_listing(payload: bytes) -> List[GitHubRepositoryRecord]:
    """Parse ``gh repo list --json name,owner,url`` output.

    Raises:
        ValueError: the payload is not a JSON array of repository objects
    """
    data = json.loads(payload or b"[]")
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of repositories")

    records = []
    for item in data:
        owner = item.get("owner") or {}
        records.append(GitHubRepositoryRecord(
            name=item["name"],
            owner=owner.get("login", ""),
            url=item.get("url", ""),
        ))
    return records


class GhCliLister:
    """Lists repositories with the ``gh`` CLI (uses its own authentication)."""

    def __init__(self, executor: Optional[GitHubCommandExecutor] = None):
        self.executor = executor if executor is not None else GhCliExecutor()

    def list_repositories(self, owner: str, limit: int) -> List[GitHubRepositoryRecord]:
        args = ["repo", "list"]
        if owner:
            args.append(owner)
        args.extend(["--json", "name,owner,url", "--limit", str(limit)])

        try:
            output = self.executor.execute(args)
        except CommandError as e:
            raise GitHubListingError(owner, f"failed to execute GitHub CLI: {e}") from e

        try:
            return parse_repository_listing(output)
        except (ValueError, KeyError, AttributeError) as e:
            raise GitHubListingError(owner, f"failed to parse GitHub CLI output: {e}") from e


class GitHubApiLister:
    """Lists repositories through the GitHub REST API."""

    def __init__(self, token: str, github: Optional[Github] = None):
        self.github = github if github is not None else Github(auth=Auth.Token(token))

    def list_repositories(self, owner: str, limit: int) -> List[GitHubRepositoryRecord]:
        try:
            account = self.github.get_user(owner) if owner else self.github.get_user()
            records = []
            for repo in account.get_repos():
                if len(records) >= limit:
                    break
                records.append(GitHubRepositoryRecord(
                    name=repo.name,
                    owner=repo.owner.login,
                    url=repo.html_url,
                ))
        except GithubException as e:
            raise GitHubListingError(owner, str(e)) from e

        logger.debug(f"[GitHub] Listed {len(records)} repositories for {owner or 'authenticated user'}")
        return records


def default_lister(token: Optional[str] = None) -> RepositoryLister:
    """Use the REST API when a token is configured, otherwise the gh CLI."""
    if token:
        return GitHubApiLister(token)
    return GhCliLister()


def list_github_repositories(
    owner: str,
    lister: Optional[RepositoryLister] = None,
    limit: int = DEFAULT_LIMIT,
    executor: Optional[CommandExecutor] = None,
) -> List[Repository]:
    """List an owner's GitHub repositories as (not yet cloned) Repositories.

    An empty ``owner`` lists the authenticated user's repositories.
    """
    lister = lister if lister is not None else default_lister()
    records = lister.list_repositories(owner, limit)
    return [
        Repository(host=GITHUB_HOST, organization=record.owner, name=record.name, executor=executor)
        for record in records
    ]
