"""Display and formatting service for repository results"""
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gitm.constants import (
    DRY_RUN_BANNER,
    GITHUB_COLUMNS,
    SYMBOL_FAIL,
    SYMBOL_OK,
    UPDATE_COLUMNS,
    UPDATE_STATE_DISPLAY,
)
from gitm.logging_config import get_logger
from gitm.models.status import OperationSummary, PruneResult, RepositoryStatus, StatusResult, UpdateResult
from gitm.services.git.repository import Repository

logger = get_logger(__name__)


def _join_names(names: Sequence[str]) -> str:
    return ", ".join(names)


class DisplayService:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console if console is not None else Console()
        self.verbose = verbose

    def display_header(self, repository: Repository) -> None:
        self.console.print(f"[bold]=== {repository.full_name} ===[/bold]")

    def display_error(self, error: Exception) -> None:
        self.console.print(f"[red]{SYMBOL_FAIL} Error: {escape(str(error))}[/red]")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def display_status_results(self, results: Sequence[StatusResult], display_all: bool = False) -> None:
        """Show repositories with issues (or every repository with ``display_all``)."""
        for result in results:
            if not display_all and not result.has_issues:
                continue
            self.display_header(result.repository)
            if result.error is not None:
                self.display_error(result.error)
            else:
                self.display_status(result.status)
            self.console.print()

    def display_status(self, status: RepositoryStatus) -> None:
        behind = status.branches_where(lambda b: b.behind > 0)
        if behind:
            text = _join_names([f"{b.name} ({b.behind} behind)" for b in behind])
            self.console.print(f"[yellow]{SYMBOL_FAIL} Branches behind remote: {text}[/yellow]")

        gone = status.branches_where(lambda b: b.remote_gone)
        if gone:
            self.console.print(
                f"[yellow]{SYMBOL_FAIL} Branches with remote gone: {_join_names([b.name for b in gone])}[/yellow]"
            )

        no_remote = status.branches_where(lambda b: b.no_remote_tracking)
        if no_remote:
            self.console.print(
                f"[yellow]{SYMBOL_FAIL} Branches without remote: {_join_names([b.name for b in no_remote])}[/yellow]"
            )

        if status.has_uncommitted_changes:
            self.console.print(f"[yellow]{SYMBOL_FAIL} Uncommitted changes[/yellow]")
            if self.verbose:
                for change in status.uncommitted_changes:
                    self.console.print(f"    [dim]{change}[/dim]")

        if status.stash_count:
            self.console.print(f"[dim]Stashes: {status.stash_count}[/dim]")

        if not status.has_issues:
            self.console.print(f"[green]{SYMBOL_OK} Repository is clean[/green]")

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def display_update_results(self, results: Sequence[UpdateResult]) -> None:
        for result in results:
            self.display_header(result.repository)
            if result.error is not None:
                self.display_error(result.error)
            elif not result.branch_results:
                self.console.print(f"[green]{SYMBOL_OK} Fetched, no tracked branches to update[/green]")
            else:
                self.console.print(self._update_table(result))
            if result.restore_error is not None:
                self.console.print(f"[red]{SYMBOL_FAIL} Could not restore original branch: {escape(str(result.restore_error))}[/red]")
            self.console.print()

    def _update_table(self, result: UpdateResult) -> Table:
        table = Table()
        for col in UPDATE_COLUMNS:
            table.add_column(col.label)

        for name, branch_result in result.branch_results.items():
            label, style = UPDATE_STATE_DISPLAY[branch_result.state]
            notes = escape(str(branch_result.error)) if branch_result.error is not None else ""
            table.add_row(
                name,
                f"[{style}]{label}[/{style}]",
                str(branch_result.branch.behind),
                notes,
            )
        return table

    # ------------------------------------------------------------------
    # Prune
    # ------------------------------------------------------------------

    def display_prune_results(self, results: Sequence[PruneResult], dry_run: bool = False) -> None:
        if dry_run:
            self.console.print(f"[yellow]{DRY_RUN_BANNER}[/yellow]")
            self.console.print()

        verb = "Would prune" if dry_run else "Pruned"
        for result in results:
            self.display_header(result.repository)
            if result.error is not None:
                self.display_error(result.error)
                if result.pruned_branches:
                    self.console.print(
                        f"[yellow]Deleted before the failure: {_join_names(result.pruned_branches)}[/yellow]"
                    )
            elif not result.pruned_branches:
                self.console.print(f"[green]{SYMBOL_OK} No branches to prune[/green]")
            else:
                self.console.print(
                    f"[green]{SYMBOL_OK} {verb} {len(result.pruned_branches)} branches: "
                    f"{_join_names(result.pruned_branches)}[/green]"
                )
            self.console.print()

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def display_summary(
        self, summary: OperationSummary, clean_message: str, issues_label: str = "need attention"
    ) -> None:
        """Print the aggregate line, or ``clean_message`` when nothing needs attention."""
        if summary.all_clean:
            self.console.print(f"[green] {SYMBOL_OK} {clean_message}[/green]")
            return

        parts = [f"{summary.total} repositories"]
        if summary.with_issues:
            parts.append(f"{summary.with_issues} {issues_label}")
        if summary.failed:
            parts.append(f"[red]{summary.failed} failed[/red]")
        self.console.print(f"[bold]Summary:[/bold] {', '.join(parts)}")

    # ------------------------------------------------------------------
    # GitHub
    # ------------------------------------------------------------------

    def display_github_repositories(self, repositories: List[Repository]) -> None:
        table = Table()
        for col in GITHUB_COLUMNS:
            table.add_column(col.label)
        for index, repository in enumerate(repositories, start=1):
            table.add_row(str(index), repository.name, repository.organization)
        self.console.print(table)

    def display_clone_outcome(self, repository: Repository, error: Optional[Exception] = None) -> None:
        if error is not None:
            self.console.print(f"[red]{SYMBOL_FAIL} Error cloning repository {repository.name}: {escape(str(error))}[/red]")
        else:
            self.console.print(
                f"[green]{SYMBOL_OK} Repository {repository.name} cloned successfully in {repository.path}[/green]"
            )
