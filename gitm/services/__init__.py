"""Services for gitm: command execution, repository operations and display."""

from .executor import GhCliExecutor, GitCommandExecutor
from .orchestrator import RepositoryOrchestrator

__all__ = ["GhCliExecutor", "GitCommandExecutor", "RepositoryOrchestrator"]
