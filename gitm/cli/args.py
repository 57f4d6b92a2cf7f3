"""Command-line argument parsing for gitm."""

import argparse

from gitm.__version__ import __version__
from gitm.services.git.github import DEFAULT_LIMIT


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("filters")
    group.add_argument("--host", default="", help="Only repositories on this host (exact match)")
    group.add_argument("--org", default="", help="Only repositories of this organization (exact match)")
    group.add_argument("--repo", default="", help="Only repositories with this name (exact match)")
    group.add_argument(
        "--path",
        default="",
        help="Operate on this repository, or on the repositories below this directory",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitm",
        description="Manage many git repositories laid out as <root>/<host>/<organization>/<name>",
        epilog="Configuration is read from ~/.gitm.json (override with --config or GITM_CONFIG).",
    )
    parser.add_argument("--version", action="version", version=f"gitm {__version__}")
    parser.add_argument("--config", metavar="FILE", help="Path to the configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel workers (default: auto-detect based on CPU and threading mode)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Process repositories one at a time (disable parallelism)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    clone = subparsers.add_parser("clone", help="Clone a repository into the root directory")
    clone.add_argument("url", help="Remote URL (SSH or HTTPS)")
    clone.add_argument("--root-dir", help="Override the configured root directory")

    github = subparsers.add_parser("github", help="List the repositories of a GitHub user or organization")
    github.add_argument("owner", nargs="?", default="", help="Owner (default: authenticated user)")
    github.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum repositories to list")

    gh_clone = subparsers.add_parser("gh-clone", help="Select GitHub repositories and clone them over SSH")
    gh_clone.add_argument("owner", nargs="?", default="", help="Owner (default: authenticated user)")
    gh_clone.add_argument("--root-dir", help="Override the configured root directory")
    gh_clone.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum repositories to list")

    status = subparsers.add_parser("status", help="Show repositories that need attention")
    _add_filter_arguments(status)
    status.add_argument(
        "--display-all", action="store_true", help="Show every repository, including clean ones"
    )

    update = subparsers.add_parser("update", help="Fetch and fast-forward tracked branches")
    _add_filter_arguments(update)
    update.add_argument("--fetch-only", action="store_true", help="Only fetch, do not update branches")
    update.add_argument("--prune", action="store_true", help="Prune deleted remote branches while fetching")

    prune = subparsers.add_parser("prune", help="Delete local branches that are gone or merged")
    _add_filter_arguments(prune)
    prune.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would be deleted without actually deleting",
    )
    prune.add_argument("--gone-only", action="store_true", help="Only branches whose remote is gone")
    prune.add_argument("--merged-only", action="store_true", help="Only branches merged into the default branch")

    config = subparsers.add_parser("config", help="Manage the configuration file")
    config_sub = config.add_subparsers(dest="config_command", metavar="ACTION")
    config_sub.required = True
    config_init = config_sub.add_parser("init", help="Write a configuration file with defaults")
    config_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    config_get = config_sub.add_parser("get", help="Show one value, or all values")
    config_get.add_argument("key", nargs="?", help="Configuration key")
    config_set = config_sub.add_parser("set", help="Set a value")
    config_set.add_argument("key", help="Configuration key")
    config_set.add_argument("value", help="New value (lists are space separated)")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
