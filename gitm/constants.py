"""Shared constants for gitm."""

from dataclasses import dataclass
from typing import List

from gitm.models.branch import BranchUpdateState


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


# Branch update table
UPDATE_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("state", "Result", 12),
    ColumnDefinition("behind", "Behind", 8),
    ColumnDefinition("notes", "Notes", 40),
]

# GitHub listing table
GITHUB_COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("index", "#", 4),
    ColumnDefinition("name", "Repository", 40),
    ColumnDefinition("owner", "Owner", 20),
]


# Symbol constants
SYMBOL_OK = "✓"
SYMBOL_FAIL = "✗"
SYMBOL_WARNING = "⚠"


# Display names and colors for branch update states (Rich color names)
UPDATE_STATE_DISPLAY = {
    BranchUpdateState.PENDING: ("pending", "dim"),
    BranchUpdateState.CHECKING_OUT: ("checking out", "dim"),
    BranchUpdateState.PULLING: ("pulling", "dim"),
    BranchUpdateState.COMPLETED: ("updated", "green"),
    BranchUpdateState.FAILED: ("failed", "red"),
    BranchUpdateState.UP_TO_DATE: ("up to date", "cyan"),
}


DRY_RUN_BANNER = f"{SYMBOL_WARNING}  DRY RUN - No branches were actually deleted"
NO_REPOSITORIES_MESSAGE = "No repositories found matching the specified filters."
