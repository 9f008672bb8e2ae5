"""DB farm lifecycle management through the ``monetdbd`` CLI.

``monetdbd`` does not report state in a machine-readable format, so every
assumption about its output lives in this module:

- ``monetdbd get all <farm>`` prints nothing on stdout for a path that is
  not a DB farm.
- ``monetdbd get <property> <farm>`` prints a header line followed by
  ``<property>   <value>``.
- The ``status`` property reads ``monetdbd[<pid>] <version> (<release>) is
  serving this dbfarm`` when the daemon is up and ``no monetdbd is serving
  this dbfarm`` when it is down.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from monetbench.errors import CommandError
from monetbench.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

RUNNING_MARKER = "monetdbd["


class FarmError(CommandError):
    """Raised when a DB farm operation fails."""

    pass


class FarmState(str, Enum):
    """Lifecycle state of a DB farm."""

    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class FarmInfo:
    """State of a DB farm as reported by the daemon."""

    path: Path
    state: FarmState
    port: int | None = None

    @property
    def exists(self) -> bool:
        return self.state != FarmState.ABSENT

    @property
    def running(self) -> bool:
        return self.state == FarmState.RUNNING


def parse_property_output(name: str, output: str) -> str | None:
    """Extract a property value from ``monetdbd get`` output.

    Returns None when the output has no value line.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    return re.sub(rf"^\s*{re.escape(name)}\s*", "", lines[-1], count=1).strip()


def status_is_running(status: str) -> bool:
    """Whether a farm ``status`` property value says a daemon is serving it."""
    return RUNNING_MARKER in status


class MonetDBDaemon:
    """Adapter around the ``monetdbd`` farm administration CLI."""

    def __init__(self, binary: str = "monetdbd", timeout: float | None = None):
        self.binary = binary
        self.timeout = timeout

    def _run(self, *args: str | Path) -> CommandResult:
        return run_command([self.binary, *args], timeout=self.timeout)

    def _checked(self, message: str, *args: str | Path) -> CommandResult:
        result = self._run(*args)
        if not result.ok:
            raise FarmError(
                f"{message}: {result.error_summary()}",
                command=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, path: Path) -> bool:
        """Whether ``path`` holds a DB farm known to monetdbd."""
        return bool(self._run("get", "all", path).lines)

    def get_property(self, name: str, path: Path) -> str:
        """Read a single farm property such as ``port`` or ``status``."""
        result = self._run("get", name, path)
        value = parse_property_output(name, result.stdout)
        if value is None:
            raise FarmError(
                f"Could not read property '{name}' of the DB farm at {path}: "
                f"{result.error_summary()}",
                command=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return value

    def get_port(self, path: Path) -> int:
        value = self.get_property("port", path)
        try:
            return int(value)
        except ValueError:
            raise FarmError(  # noqa: B904
                f"DB farm at {path} reports a non-numeric port: {value!r}"
            )

    def is_up(self, path: Path) -> bool:
        """Whether a monetdbd process is serving the farm."""
        return status_is_running(self.get_property("status", path))

    def state(self, path: Path) -> FarmInfo:
        """Typed snapshot of the farm at ``path``."""
        if not self.exists(path):
            return FarmInfo(path=path, state=FarmState.ABSENT)
        state = FarmState.RUNNING if self.is_up(path) else FarmState.STOPPED
        return FarmInfo(path=path, state=state, port=self.get_port(path))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def create(self, path: Path, port: int) -> None:
        """Initialize a farm at ``path``, set its port and start it."""
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FarmError(  # noqa: B904
                f"Failed creating a directory for the DB farm at {path}: {e}"
            )

        self._checked(
            f"A MonetDB database farm does not exist at {path}, and cannot be created there",
            "create",
            path,
        )
        self._checked(
            f"Can't set the daemon port for new DB farm {path} to {port}",
            "set",
            f"port={port}",
            path,
        )
        self._checked(f"Could not start the DB farm at {path}", "start", path)
        logger.info("Created DB farm at %s on port %d", path, port)

    def start(self, path: Path) -> bool:
        """Start the farm's daemon unless it is already up.

        Returns:
            True if a start was issued, False if the farm was already up
        """
        if self.is_up(path):
            return False
        self._checked(f"Could not start the DB farm at {path}", "start", path)
        return True

    def ensure(self, path: Path, port: int) -> tuple[FarmInfo, bool]:
        """Make sure a running farm exists at ``path``.

        An existing farm keeps its own port; ``port`` only applies to a
        farm created here.

        Returns:
            (running farm info, whether the farm was created)
        """
        created = False
        if self.exists(path):
            self.start(path)
        else:
            self.create(path, port)
            created = True

        if not self.is_up(path):
            raise FarmError(f"Could not get DB farm at {path} to the started state")

        return FarmInfo(path=path, state=FarmState.RUNNING, port=self.get_port(path)), created
