"""Parser for ``git branch -vv`` output."""

import re
from typing import List, Optional

from gitm.models.branch import BranchInfo

# Tracking info sits right after the commit hash, before the subject, and
# names a remote ref ("origin/main"); "[WIP]"-style subjects do not match.
_TRACKING_RE = re.compile(r"(?:[0-9a-fA-F]+\s+)?\[([^\s\]:]+/[^\s\]:]+)(?::\s*([^\]]*))?\]")
_GONE_RE = re.compile(r"\bgone\b")
_AHEAD_RE = re.compile(r"\bahead (\d+)")
_BEHIND_RE = re.compile(r"\bbehind (\d+)")


def parse_branch_line(line: str) -> Optional[BranchInfo]:
    """Parse one line of ``git branch -vv`` into a BranchInfo.

    Returns None for blank or malformed lines and for a detached HEAD.

    Examples:
        ``* main 1a2b3c [origin/main: ahead 2, behind 1] msg``
        ``  feature 4d5e6f [origin/feature: gone] msg``
        ``  local 7a8b9c msg``
        ``  local 7a8b9c [WIP] msg`` (brackets in the subject are not tracking info)
    """
    line = line.strip()
    if not line:
        return None

    current = False
    if line.startswith("* "):
        current = True
        line = line[2:]

    parts = line.split(None, 1)
    if len(parts) < 2:
        return None
    if parts[0].startswith("("):
        # "(HEAD detached at ...)" is not a branch
        return None

    branch = BranchInfo(name=parts[0], current=current)
    match = _TRACKING_RE.match(parts[1])
    if match is None:
        branch.no_remote_tracking = True
        return branch

    ref, counts = match.group(1), match.group(2) or ""
    if _GONE_RE.search(counts):
        branch.remote_gone = True
        return branch

    branch.remote_tracking = ref
    ahead = _AHEAD_RE.search(counts)
    if ahead:
        branch.ahead = int(ahead.group(1))
    behind = _BEHIND_RE.search(counts)
    if behind:
        branch.behind = int(behind.group(1))
    return branch


def parse_branch_listing(output: str) -> List[BranchInfo]:
    """Parse the full ``git branch -vv`` output, keeping listing order."""
    branches = []
    for line in output.splitlines():
        branch = parse_branch_line(line)
        if branch is not None:
            branches.append(branch)
    return branches
