"""Data models for gitm."""

from .branch import BranchInfo, BranchUpdateState
from .status import (
    BranchUpdateResult,
    OperationSummary,
    PruneResult,
    RepositoryStatus,
    StatusResult,
    UpdateResult,
)

__all__ = [
    "BranchInfo",
    "BranchUpdateState",
    "BranchUpdateResult",
    "OperationSummary",
    "PruneResult",
    "RepositoryStatus",
    "StatusResult",
    "UpdateResult",
]
