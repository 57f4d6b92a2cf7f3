"""Command-line interface for gitm"""

import os
import sys
from contextlib import contextmanager
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt

from gitm.cli.args import parse_args
from gitm.cli.selection import parse_selection
from gitm.config import Config, get_config_value, init_config, load_config, set_config_value
from gitm.constants import NO_REPOSITORIES_MESSAGE
from gitm.exceptions import GitmError
from gitm.logging_config import get_logger, setup_logging
from gitm.services.display_service import DisplayService
from gitm.services.executor import GitCommandExecutor
from gitm.services.git.discovery import RepositoryFilter, find_repositories
from gitm.services.git.github import default_lister, github_ssh_url, list_github_repositories
from gitm.services.git.repository import Repository, parse_url
from gitm.services.orchestrator import (
    RepositoryOrchestrator,
    summarize_prune,
    summarize_status,
    summarize_update,
)
from gitm.utils.threading import get_threading_info

console = Console()
logger = get_logger(__name__)


class CommandContext:
    """Everything a command handler needs besides its own arguments."""

    def __init__(self, args, config: Config, console: Console):
        self.args = args
        self.config = config
        self.console = console
        self.display = DisplayService(console=console, verbose=config.verbose)
        self.executor = GitCommandExecutor(timeout=config.command_timeout)

    def orchestrator(self, on_result: Optional[Callable[[Repository], None]] = None) -> RepositoryOrchestrator:
        return RepositoryOrchestrator(
            workers=self.config.workers,
            sequential=self.config.sequential,
            on_result=on_result,
        )

    def root_directory(self) -> str:
        root_dir = getattr(self.args, "root_dir", None)
        if root_dir:
            return os.path.expanduser(root_dir)
        return self.config.root_path


def _filters_from_args(args) -> RepositoryFilter:
    return RepositoryFilter(host=args.host, organization=args.org, name=args.repo, path=args.path)


def _discover(ctx: CommandContext) -> List[Repository]:
    repositories = find_repositories(
        ctx.config.root_path,
        filters=_filters_from_args(ctx.args),
        executor=ctx.executor,
    )
    logger.info(f"Found {len(repositories)} repositories")
    return repositories


@contextmanager
def _progress(ctx: CommandContext, description: str, total: int):
    """Yield an ``on_result`` callback that advances a progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=ctx.console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=total)
        yield lambda repository: progress.advance(task)


# ----------------------------------------------------------------------
# Command handlers
# ----------------------------------------------------------------------

def cmd_clone(ctx: CommandContext) -> int:
    url = ctx.args.url
    repository = parse_url(url, executor=ctx.executor)
    root = ctx.root_directory()

    ctx.console.print(f"Cloning {url} to {repository.target_path(root)}")
    repository.clone(root, url, ctx.config.clone_default_options)
    ctx.console.print(f"[green]Successfully cloned repository to {repository.path}[/green]")
    return 0


def _list_github(ctx: CommandContext) -> List[Repository]:
    owner = ctx.args.owner
    if not owner:
        ctx.console.print("No owner provided. Using authenticated user.")
    repositories = list_github_repositories(
        owner,
        lister=default_lister(ctx.config.github_token),
        limit=ctx.args.limit,
        executor=ctx.executor,
    )
    if not repositories:
        ctx.console.print("No repositories found.")
    return repositories


def cmd_github(ctx: CommandContext) -> int:
    repositories = _list_github(ctx)
    if repositories:
        ctx.display.display_github_repositories(repositories)
    return 0


def _prompt_selection(ctx: CommandContext, count: int) -> List[int]:
    while True:
        answer = Prompt.ask(
            "Select repositories to clone (e.g. 1,3,5-7 or all; empty to cancel)",
            console=ctx.console,
            default="",
            show_default=False,
        )
        if not answer.strip():
            return []
        try:
            return parse_selection(answer, count)
        except ValueError as e:
            ctx.console.print(f"[red]{escape(str(e))}[/red]")


def cmd_gh_clone(ctx: CommandContext) -> int:
    repositories = _list_github(ctx)
    if not repositories:
        return 0

    ctx.display.display_github_repositories(repositories)
    selected = [repositories[i] for i in _prompt_selection(ctx, len(repositories))]
    if not selected:
        ctx.console.print("[yellow]Nothing selected[/yellow]")
        return 0

    root = ctx.root_directory()
    failures = 0
    for repository in selected:
        url = github_ssh_url(repository.organization, repository.name)
        try:
            repository.clone(root, url, ctx.config.clone_default_options)
        except GitmError as e:
            failures += 1
            ctx.display.display_clone_outcome(repository, e)
            continue
        ctx.display.display_clone_outcome(repository)

    return 1 if failures else 0


def cmd_status(ctx: CommandContext) -> int:
    repositories = _discover(ctx)
    if not repositories:
        ctx.console.print(NO_REPOSITORIES_MESSAGE)
        return 0

    with _progress(ctx, "Checking repositories...", len(repositories)) as advance:
        results = ctx.orchestrator(on_result=advance).status_all(repositories)

    ctx.display.display_status_results(results, display_all=ctx.args.display_all)
    summary = summarize_status(results)
    ctx.display.display_summary(summary, "All repositories are clean")
    return 1 if summary.failed else 0


def cmd_update(ctx: CommandContext) -> int:
    repositories = _discover(ctx)
    if not repositories:
        ctx.console.print(NO_REPOSITORIES_MESSAGE)
        return 0

    # git output is streamed to the terminal, so no progress bar here
    results = ctx.orchestrator().update_all(
        repositories, fetch_only=ctx.args.fetch_only, prune=ctx.args.prune
    )

    ctx.display.display_update_results(results)
    summary = summarize_update(results)
    ctx.display.display_summary(summary, "All repositories are up to date", issues_label="updated")
    return 1 if summary.failed else 0


def cmd_prune(ctx: CommandContext) -> int:
    gone_only = ctx.args.gone_only
    merged_only = ctx.args.merged_only
    if not gone_only and not merged_only:
        gone_only = merged_only = True

    repositories = _discover(ctx)
    if not repositories:
        ctx.console.print(NO_REPOSITORIES_MESSAGE)
        return 0

    dry_run = ctx.args.dry_run
    with _progress(ctx, "Pruning branches...", len(repositories)) as advance:
        results = ctx.orchestrator(on_result=advance).prune_all(
            repositories, gone_only=gone_only, merged_only=merged_only, dry_run=dry_run
        )

    ctx.display.display_prune_results(results, dry_run=dry_run)
    summary = summarize_prune(results)
    ctx.display.display_summary(
        summary,
        "No branches to prune",
        issues_label="would be pruned" if dry_run else "pruned",
    )
    return 1 if summary.failed else 0


def cmd_config(args, console: Console) -> int:
    """Config commands work on the file itself, so they run before it is loaded."""
    path = args.config
    if args.config_command == "init":
        written = init_config(path, force=args.force)
        console.print(f"Configuration initialized at {written}")
    elif args.config_command == "get":
        if args.key:
            console.print(f"{args.key}: {get_config_value(args.key, path)}")
        else:
            for key, value in load_config(path).to_dict().items():
                if key == "github_token" and value:
                    value = "********"
                console.print(f"{key}: {value}")
    elif args.config_command == "set":
        set_config_value(args.key, args.value, path)
        console.print(f"Set {args.key} to {args.value}")
    return 0


COMMANDS = {
    "clone": cmd_clone,
    "github": cmd_github,
    "gh-clone": cmd_gh_clone,
    "status": cmd_status,
    "update": cmd_update,
    "prune": cmd_prune,
}


def _show_debug_info(config: Config) -> None:
    console.print("[yellow]Debug mode enabled[/yellow]")

    threading_info = get_threading_info()
    console.print("[yellow]Threading Information:[/yellow]")
    console.print(f"  Python version: {threading_info['python_version']}")
    console.print(f"  Threading mode: {threading_info['mode']}")
    console.print(f"  CPU count: {threading_info['cpu_count']}")
    console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
    console.print(f"  Free-threading enabled: {threading_info['free_threading']}")

    console.print("[yellow]Configuration:[/yellow]")
    for key, value in config.to_dict().items():
        if key == "github_token" and value:
            value = "********"
        console.print(f"  {key}: {value}")


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    debug = parsed_args.debug
    try:
        setup_logging(verbose=parsed_args.verbose, debug=debug)

        if parsed_args.command == "config":
            return cmd_config(parsed_args, console)

        config = load_config(parsed_args.config)
        config.verbose = config.verbose or parsed_args.verbose
        config.debug = config.debug or debug
        config.sequential = config.sequential or parsed_args.sequential
        if parsed_args.workers is not None:
            config.workers = parsed_args.workers
        if config.verbose != parsed_args.verbose or config.debug != debug:
            setup_logging(verbose=config.verbose, debug=config.debug)
        debug = config.debug

        if debug:
            _show_debug_info(config)

        ctx = CommandContext(parsed_args, config, console)
        return COMMANDS[parsed_args.command](ctx)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitmError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
