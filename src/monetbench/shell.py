"""Thin wrapper around ``subprocess.run`` for external tool invocations.

All daemon, client, generator and build tool calls go through
``run_command`` so they share logging, timeout and error translation.
Exit-status interpretation is left to the per-tool adapters.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import CommandError, MissingToolError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured outcome of one external command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> list[str]:
        """Non-blank stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]

    def error_summary(self, limit: int = 300) -> str:
        """Short description of the failure for error messages."""
        text = (self.stderr or self.stdout).strip()
        if not text:
            return f"exit code {self.returncode}"
        return text[:limit]


def run_command(
    args: Sequence[str | Path],
    cwd: Path | None = None,
    timeout: float | None = None,
    input_text: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run an external command and capture its output.

    Args:
        args: Program and arguments
        cwd: Working directory for the command
        timeout: Seconds before the command is killed (None = no limit)
        input_text: Text piped to the command's standard input
        env: Full environment for the command (None = inherit)

    Returns:
        CommandResult, whatever the exit status

    Raises:
        CommandError: If the program cannot be started or times out
    """
    argv = [str(a) for a in args]
    logger.debug("Running: %s", shlex.join(argv))

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd else None,
            timeout=timeout,
            input=input_text,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise CommandError(f"Cannot run {argv[0]}: {e}", command=argv) from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            f"Command timed out after {timeout}s: {shlex.join(argv)}", command=argv
        ) from e

    return CommandResult(
        args=argv,
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


def require_tool(name: str, description: str = "") -> str:
    """Return the full path of an executable, or raise MissingToolError."""
    path = shutil.which(name)
    if not path:
        what = description or name
        raise MissingToolError(f"{what} unavailable: '{name}' not found on the PATH")
    return path
