"""Branch model and related enums"""
from enum import Enum
from dataclasses import dataclass


class BranchUpdateState(Enum):
    """Progress of a single branch through an update."""
    PENDING = "pending"
    CHECKING_OUT = "checking-out"
    PULLING = "pulling"
    COMPLETED = "completed"
    FAILED = "failed"
    UP_TO_DATE = "up-to-date"


@dataclass
class BranchInfo:
    """A local branch and its relationship to its upstream."""
    name: str
    current: bool = False
    remote_tracking: str = ""  # e.g. "origin/main", empty when none or gone
    no_remote_tracking: bool = False
    remote_gone: bool = False
    ahead: int = 0
    behind: int = 0

    @property
    def has_live_tracking(self) -> bool:
        """True when the branch tracks an upstream that still exists."""
        return not self.no_remote_tracking and not self.remote_gone

    @property
    def needs_pull(self) -> bool:
        return self.has_live_tracking and self.behind > 0
