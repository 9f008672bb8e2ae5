"""Exception hierarchy for monetbench.

Every failure the provisioning workflow can report derives from
``MonetbenchError``. Subsystems define their own subclasses next to the
code that raises them (``FarmError`` in ``monetdb.farm``, ``ConfigError``
in ``config.loader`` and so on).
"""

from __future__ import annotations

from collections.abc import Sequence


class MonetbenchError(Exception):
    """Base exception for monetbench errors."""

    pass


class CommandError(MonetbenchError):
    """Raised when an external command fails, times out, or cannot be run."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


class MissingToolError(MonetbenchError):
    """Raised when a required executable is not on the PATH."""

    pass


class InsufficientSpaceError(MonetbenchError):
    """Raised when a directory's device does not have enough free space."""

    def __init__(self, message: str, needed_gib: int, available_gib: int):
        super().__init__(message)
        self.needed_gib = needed_gib
        self.available_gib = available_gib


class DataDirectoryError(MonetbenchError):
    """Raised when the data generation directory is missing or in the way."""

    pass


class DatabaseConflictError(MonetbenchError):
    """Raised when the target database exists and recreation was not requested."""

    pass
