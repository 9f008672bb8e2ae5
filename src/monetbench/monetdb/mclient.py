"""SQL execution through the ``mclient`` CLI."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from monetbench._constants import DEFAULT_PASSWORD, DEFAULT_USER
from monetbench.errors import CommandError
from monetbench.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

# mclient reports SQL errors on stderr with one of these prefixes
_ERROR_PREFIXES = ("ERROR", "!", "MALException", "SQLException")


class MClientError(CommandError):
    """Raised when mclient fails to execute a script."""

    pass


def find_sql_errors(stderr: str) -> list[str]:
    """Lines of mclient stderr output that report an error."""
    lines = (line.strip() for line in stderr.splitlines())
    return [line for line in lines if line.startswith(_ERROR_PREFIXES)]


def ensure_credentials_file(path: Path) -> bool:
    """Write a default mclient credentials file unless a readable one exists.

    Returns:
        True if the file was written
    """
    if path.is_file() and os.access(path, os.R_OK):
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"user={DEFAULT_USER}\npassword={DEFAULT_PASSWORD}\nlanguage=sql\n")
    logger.info("Wrote default client credentials to %s", path)
    return True


class MClient:
    """Runs SQL scripts against one database through ``mclient``.

    Scripts are piped to the client's standard input verbatim.
    When ``credentials_file`` is given, mclient reads the user and password
    from it through ``DOTMONETDBFILE`` instead of its default lookup.
    """

    def __init__(
        self,
        database: str,
        port: int,
        binary: str = "mclient",
        timeout: float | None = None,
        credentials_file: Path | None = None,
    ):
        self.database = database
        self.port = port
        self.binary = binary
        self.timeout = timeout
        self.credentials_file = credentials_file

    def environment(self) -> dict[str, str] | None:
        if self.credentials_file is None:
            return None
        return {**os.environ, "DOTMONETDBFILE": str(self.credentials_file)}

    def execute(self, sql: str, output_format: str = "csv", description: str = "") -> CommandResult:
        """Execute a SQL script.

        Args:
            sql: Script text
            output_format: mclient result format (``csv``, ``trash``, ...)
            description: Name of the script, for error messages

        Raises:
            MClientError: On a non-zero exit or SQL errors reported on stderr
        """
        args = [
            self.binary,
            "-lsql",
            "-f",
            output_format,
            "-d",
            self.database,
            "-p",
            str(self.port),
        ]
        result = run_command(
            args, timeout=self.timeout, input_text=sql, env=self.environment()
        )
        what = description or "SQL script"

        errors = find_sql_errors(result.stderr)
        if not result.ok or errors:
            detail = "; ".join(errors[:3]) if errors else result.error_summary()
            raise MClientError(
                f"Failed running {what} against database {self.database} "
                f"on port {self.port}: {detail}",
                command=result.args,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        if result.stdout.strip():
            logger.debug("mclient output for %s:\n%s", what, result.stdout.rstrip())
        return result
