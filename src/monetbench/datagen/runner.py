"""Running dbgen to produce the benchmark table files."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from monetbench.diskspace import check_free_space
from monetbench.errors import CommandError, DataDirectoryError
from monetbench.shell import run_command

from .builder import Dbgen

logger = logging.getLogger(__name__)


class DbgenRunError(CommandError):
    """Raised when dbgen exits with a failure."""

    pass


def check_generation_target(data_dir: Path) -> None:
    """Refuse to generate into a path that already exists."""
    if data_dir.is_dir():
        raise DataDirectoryError(
            f"The intended data generation directory {data_dir} is already present.\n"
            "You must either remove it, use a subdirectory within it, or invoke this script "
            "with the --use-generated option to use the data in it."
        )
    if data_dir.exists():
        raise DataDirectoryError(
            f"The intended data generation directory {data_dir} is already present, but as a "
            "non-directory; please remove it or specify a different directory."
        )


def verify_pregenerated(data_dir: Path) -> Path:
    if not data_dir.is_dir():
        raise DataDirectoryError(
            "Was requested to use already-generated data, but the directory for it is "
            f"missing: {data_dir}"
        )
    return data_dir


@contextmanager
def removed_on_failure(directory: Path) -> Iterator[Path]:
    """Remove ``directory`` if the body raises, then re-raise."""
    try:
        yield directory
    except BaseException:
        logger.info("Removing partially generated data in %s", directory)
        shutil.rmtree(directory, ignore_errors=True)
        raise


def remove_data_dir(data_dir: Path) -> bool:
    """Delete the raw table files after loading.

    Returns:
        True if something was removed
    """
    if not data_dir.exists():
        return False
    shutil.rmtree(data_dir)
    return True


class DataGenerator:
    """Generates table files with dbgen into a fresh directory."""

    def __init__(
        self,
        dbgen: Dbgen,
        data_dir: Path,
        scale_factor: int,
        verbose: bool = False,
        timeout: float | None = None,
    ):
        self.dbgen = dbgen
        self.data_dir = data_dir
        self.scale_factor = scale_factor
        self.verbose = verbose
        self.timeout = timeout

    def command(self) -> list[str]:
        args = [
            str(self.dbgen.binary),
            "-b",
            str(self.dbgen.dists_file),
            "-s",
            str(self.scale_factor),
        ]
        if self.verbose:
            args.append("-v")
        return args

    def generate(self) -> Path:
        """Create the data directory and run dbgen inside it.

        The directory is removed again if generation fails.

        Raises:
            DataDirectoryError: If the directory exists or cannot be created
            InsufficientSpaceError: If the device is too full
            DbgenRunError: If dbgen fails
        """
        check_generation_target(self.data_dir)
        check_free_space(self.data_dir, self.scale_factor, purpose="the generated table files")

        try:
            self.data_dir.mkdir(parents=True)
        except OSError as e:
            raise DataDirectoryError(  # noqa: B904
                f"Failed creating the generation directory for the table data: {self.data_dir}: {e}"
            )

        with removed_on_failure(self.data_dir):
            result = run_command(self.command(), cwd=self.data_dir, timeout=self.timeout)
            if not result.ok:
                raise DbgenRunError(
                    f"Failed generating data using {self.dbgen.binary} with scale factor "
                    f"{self.scale_factor}, at {self.data_dir}: {result.error_summary()}",
                    command=result.args,
                    returncode=result.returncode,
                    stderr=result.stderr,
                )
        if result.stdout.strip():
            logger.debug("dbgen output:\n%s", result.stdout.rstrip())
        return self.data_dir
