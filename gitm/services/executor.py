"""Command executors used to drive git and the GitHub CLI.

Repositories never spawn processes themselves: they are handed an executor
that satisfies :class:`CommandExecutor`, which keeps them testable with a
scripted fake.
"""

import os
import subprocess
import sys
from typing import Optional, Protocol, Sequence

from git.cmd import Git
from git.exc import GitCommandError, GitCommandNotFound

from gitm.exceptions import CommandError, CommandTimeoutError
from gitm.logging_config import get_logger

logger = get_logger(__name__)


class CommandExecutor(Protocol):
    """Capability: run git with ``args`` against ``repo_path``."""

    def execute(self, repo_path: str, stream: bool, args: Sequence[str]) -> bytes:
        ...


class GitHubCommandExecutor(Protocol):
    """Capability: run the GitHub CLI with ``args``."""

    def execute(self, args: Sequence[str]) -> bytes:
        ...


def scope_arguments(repo_path: str, args: Sequence[str]) -> list:
    """Prefix ``args`` with ``-C <dir>`` so git runs inside the repository.

    A clone targets a directory that does not exist yet, so it is scoped to
    the parent directory instead.
    """
    args = list(args)
    if not repo_path or not args:
        return args
    if args[0] == "clone":
        return ["-C", os.path.dirname(repo_path), *args]
    return ["-C", repo_path, *args]


def _clean_stderr(error: GitCommandError) -> str:
    stderr = (error.stderr if hasattr(error, "stderr") else str(error)) or ""
    stderr = str(stderr).strip()
    # GitPython decorates stderr as "stderr: '<text>'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'")
    return stderr.strip()


class GitCommandExecutor:
    """Runs git through GitPython's command wrapper."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds after which a captured command is killed
                (None waits forever)
        """
        self.timeout = timeout
        self._git = Git()

    def execute(self, repo_path: str, stream: bool, args: Sequence[str]) -> bytes:
        """Run ``git <args>`` scoped to ``repo_path``.

        When ``stream`` is true the command's output goes to the terminal
        and an empty payload is returned; otherwise stdout is captured.

        Raises:
            CommandError: git is missing or exited non-zero
            CommandTimeoutError: the command exceeded ``timeout``
        """
        command = ["git", *scope_arguments(repo_path, args)]
        logger.debug(f"Running: {' '.join(command)}")

        try:
            if stream:
                return self._execute_streamed(command)
            return self._git.execute(
                command,
                stdout_as_string=False,
                strip_newline_in_stdout=False,
                kill_after_timeout=self.timeout,
            )
        except GitCommandNotFound as e:
            raise CommandError(command, stderr=f"git executable not found: {e}") from e
        except GitCommandError as e:
            stderr = _clean_stderr(e)
            if self.timeout is not None and "did not complete in" in stderr:
                raise CommandTimeoutError(command, self.timeout) from e
            raise CommandError(command, e.status, stderr) from e

    def _execute_streamed(self, command: list) -> bytes:
        """Copy stdout to the terminal as it arrives; forward stderr once the command exits.

        git writes progress meters to stderr with carriage returns. Holding
        them until the command ends keeps concurrent repositories from
        overwriting each other's progress lines.
        """
        output_stream = getattr(sys.stdout, "buffer", None)
        if output_stream is None:
            # stdout was replaced (e.g. captured); forward decoded text instead
            output = self._git.execute(command, stdout_as_string=True)
            if output:
                sys.stdout.write(output + "\n")
            return b""

        _, _, stderr = self._git.execute(
            command,
            output_stream=output_stream,
            with_extended_output=True,
        )
        output_stream.flush()
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        if stderr:
            sys.stderr.write(stderr + "\n")
        return b""


class GhCliExecutor:
    """Runs the ``gh`` GitHub CLI and captures its output."""

    def __init__(self, binary: str = "gh", timeout: Optional[float] = None):
        self.binary = binary
        self.timeout = timeout

    def execute(self, args: Sequence[str]) -> bytes:
        command = [self.binary, *args]
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(command, stderr=f"{self.binary} executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(command, self.timeout) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace")
            raise CommandError(command, result.returncode, stderr)
        return result.stdout
