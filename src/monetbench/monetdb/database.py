"""Database lifecycle management through the ``monetdb`` admin CLI.

``monetdb -p <port> status <name>`` prints one line per matching database,
``<name>  <state> ...``, where the state token is ``R`` for a running
database and ``S`` for a stopped one. An absent database produces no
output on stdout.

Lifecycle::

    absent -> created -> released
    released <-> running <-> stopped
    any -> destroyed        (only through an explicit recreate request)
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path

from monetbench.errors import CommandError, DatabaseConflictError
from monetbench.shell import CommandResult, run_command

logger = logging.getLogger(__name__)


class DatabaseError(CommandError):
    """Raised when a database admin operation fails."""

    pass


class DatabaseState(str, Enum):
    """Lifecycle state of a database within a farm."""

    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


def parse_status_token(name: str, output: str) -> str | None:
    """Extract the state token for ``name`` from ``monetdb status`` output.

    Returns None when there is no output (database absent), and an empty
    string when the last line does not have the expected shape.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    match = re.match(rf"^{re.escape(name)}\s+(\S*)", lines[-1])
    return match.group(1) if match else ""


def state_from_token(token: str | None) -> DatabaseState:
    if token is None:
        return DatabaseState.ABSENT
    # An empty token is treated as "not running"
    return DatabaseState.RUNNING if token == "R" else DatabaseState.STOPPED


class MonetDBAdmin:
    """Adapter around ``monetdb``, bound to the port of one farm's daemon."""

    def __init__(
        self,
        port: int,
        farm: Path | None = None,
        binary: str = "monetdb",
        timeout: float | None = None,
    ):
        self.port = port
        self.farm = farm
        self.binary = binary
        self.timeout = timeout

    @property
    def _where(self) -> str:
        return f"DB farm {self.farm}" if self.farm else f"the DB farm on port {self.port}"

    def _run(self, *args: str) -> CommandResult:
        return run_command([self.binary, "-p", str(self.port), *args], timeout=self.timeout)

    def _checked(self, message: str, *args: str) -> CommandResult:
        result = self._run(*args)
        if not result.ok:
            raise DatabaseError(
                f"{message}: {result.error_summary()}",
                command=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def state(self, name: str) -> DatabaseState:
        token = parse_status_token(name, self._run("status", name).stdout)
        state = state_from_token(token)
        logger.debug("Database %s is %s", name, state.value)
        return state

    def exists(self, name: str) -> bool:
        return self.state(name) != DatabaseState.ABSENT

    def is_up(self, name: str) -> bool:
        return self.state(name) == DatabaseState.RUNNING

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def stop(self, name: str) -> bool:
        """Stop the database if it is running.

        Returns:
            True if a stop was issued
        """
        if not self.is_up(name):
            return False
        self._checked(f"Can't stop the existing DB named {name} in {self._where}", "stop", name)
        return True

    def destroy(self, name: str) -> None:
        self._checked(
            f"Failed destroying the existing DB named {name} in {self._where}",
            "destroy",
            "-f",
            name,
        )

    def create(self, name: str) -> None:
        self._checked(f"Failed to create a database named {name} in {self._where}", "create", name)

    def release(self, name: str) -> None:
        self._checked(
            f"Failed to release the database named {name} in {self._where}", "release", name
        )

    def create_released(self, name: str) -> None:
        """Create a database and release it for client connections."""
        self.create(name)
        self.release(name)

    def ensure_fresh(self, name: str, recreate: bool) -> DatabaseState:
        """Clear the way for creating ``name``.

        An absent database needs nothing. An existing one is a conflict
        unless ``recreate`` is set, in which case it is stopped (if
        running) and destroyed.

        Returns:
            The state the database was in before this call

        Raises:
            DatabaseConflictError: If the database exists and recreate is False
        """
        prior = self.state(name)
        if prior == DatabaseState.ABSENT:
            return prior

        if not recreate:
            raise DatabaseConflictError(
                f"A database named {name} already exists in {self._where}, so giving up. "
                "Perhaps you wanted to recreate it?"
            )

        if prior == DatabaseState.RUNNING:
            self.stop(name)
        self.destroy(name)
        logger.info("Destroyed existing database %s", name)
        return prior
