"""
gitm - manage many git repositories laid out by host, organization and name
"""

from .__version__ import __version__
from .config import Config
from .services.git import Repository, RepositoryFilter, find_repositories, parse_url
from .services.orchestrator import RepositoryOrchestrator

__all__ = [
    "Config",
    "Repository",
    "RepositoryFilter",
    "RepositoryOrchestrator",
    "find_repositories",
    "parse_url",
    "__version__",
]
