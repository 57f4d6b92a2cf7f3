"""Threading utilities for sizing the repository worker pool."""

import os
import sys
from typing import Dict, Any, Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with the GIL disabled
    """
    is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
    if is_gil_enabled is None:
        return False
    return not is_gil_enabled()


def get_optimal_worker_count(user_specified: Optional[int] = None, task_count: Optional[int] = None) -> int:
    """Calculate the worker count for fanning git commands out over repositories.

    Args:
        user_specified: User-specified worker count, if provided
        task_count: Number of tasks that will be submitted; the pool never
            grows beyond it

    Returns:
        Number of workers, at least 1
    """
    if user_specified is not None and user_specified > 0:
        workers = user_specified
    else:
        cpu_count = os.cpu_count() or 1
        if is_free_threading_enabled():
            workers = min(64, cpu_count * 2)
        else:
            # Work is dominated by waiting on git subprocesses
            workers = min(32, cpu_count + 4)

    if task_count is not None:
        workers = min(workers, task_count)
    return max(1, workers)


def get_threading_info() -> Dict[str, Any]:
    """Get information about the Python threading configuration.

    Returns:
        Dictionary containing threading mode, worker count, and other details
    """
    free_threading = is_free_threading_enabled()
    return {
        "mode": "free-threading" if free_threading else "GIL",
        "free_threading": free_threading,
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
