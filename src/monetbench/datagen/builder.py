"""Locating, building and validating the TPC-H ``dbgen`` utility.

Build configuration, in order of preference:

1. an existing ``Makefile`` in the dbgen directory
2. ``cmake -DMACHINE=<platform> -DDATABASE=VECTORWISE .`` if there is a
   ``CMakeLists.txt``
3. a ``Makefile`` generated from the distributed ``makefile.suite`` with
   the WORKLOAD, MACHINE and DATABASE variables filled in
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from monetbench._constants import TPC_URL
from monetbench.config.schema import Platform
from monetbench.errors import MonetbenchError
from monetbench.shell import run_command, require_tool

logger = logging.getLogger(__name__)

DBGEN_SIGNATURE = "TPC-H Population Generator"
DBGEN_DATABASE = "VECTORWISE"
DBGEN_WORKLOAD = "TPCH"


class DatagenError(MonetbenchError):
    """Base exception for data generator problems."""

    pass


class DbgenBuildError(DatagenError):
    """Raised when dbgen cannot be built."""

    pass


class DbgenInvalidError(DatagenError):
    """Raised when dbgen or its distributions file is missing or unusable."""

    pass


@dataclass(frozen=True)
class Dbgen:
    """A validated dbgen binary and its distributions file."""

    binary: Path
    dists_file: Path


def render_makefile(suite_text: str, platform: Platform | str) -> str:
    """Fill in the build variables of dbgen's ``makefile.suite``."""
    machine = platform.value if isinstance(platform, Platform) else platform
    values = {"WORKLOAD": DBGEN_WORKLOAD, "MACHINE": machine, "DATABASE": DBGEN_DATABASE}
    text = suite_text
    for var, value in values.items():
        text = re.sub(rf"^{var}\s*=.*$", f"{var}={value}", text, count=1, flags=re.MULTILINE)
    return text


class DbgenBuilder:
    """Ensures a working dbgen exists in ``dbgen_dir``, building it if needed."""

    def __init__(
        self,
        dbgen_dir: Path,
        platform: Platform | None,
        timeout: float | None = None,
    ):
        self.dbgen_dir = dbgen_dir
        self.platform = platform
        self.timeout = timeout

    @property
    def binary(self) -> Path:
        return self.dbgen_dir / "dbgen"

    @property
    def dists_file(self) -> Path:
        return self.dbgen_dir / "dists.dss"

    @property
    def makefile(self) -> Path:
        return self.dbgen_dir / "Makefile"

    def resolve(self) -> Dbgen:
        """Return a validated dbgen, building the binary if it is missing.

        Raises:
            DbgenInvalidError: Missing/unreadable dists file, or an unusable binary
            DbgenBuildError: If a build was needed and failed
        """
        self.check_dists_file()

        if not self.binary.is_file():
            self.build()

        if not os.access(self.binary, os.X_OK):
            raise DbgenInvalidError(
                f"The generation utility {self.binary} is not an executable file."
            )

        dbgen = Dbgen(binary=self.binary.resolve(), dists_file=self.dists_file.resolve())
        validate_dbgen(dbgen.binary, timeout=self.timeout)
        return dbgen

    def check_dists_file(self) -> None:
        if not self.dists_file.is_file():
            raise DbgenInvalidError(
                f"Cannot find the distributions file {self.dists_file} used by the test data "
                "generator.\nDid you remember to pull/clone the dbgen submodule? If not, try "
                f"'git submodule update --init dbgen/', or get dbgen at {TPC_URL}"
            )
        if not os.access(self.dists_file, os.R_OK):
            raise DbgenInvalidError(
                f"The distributions file {self.dists_file} used by the test data generator "
                "is not readable."
            )

    def build(self) -> Path:
        """Build dbgen from the sources in ``dbgen_dir``.

        Returns:
            Path to the built binary
        """
        if self.platform is None:
            raise DbgenBuildError(
                "Cannot determine the platform parameter necessary for building the TPC-H "
                "dbgen utility. You must specify it explicitly."
            )

        if not (self.makefile.is_file() and os.access(self.makefile, os.R_OK)):
            if (self.dbgen_dir / "CMakeLists.txt").is_file():
                self._configure_with_cmake()
            elif (self.dbgen_dir / "makefile.suite").is_file():
                self._generate_makefile()

        if not self.makefile.is_file():
            raise DbgenBuildError(
                f"Could not find or generate a Makefile in {self.dbgen_dir} for building "
                f"the generator utility {self.binary}"
            )

        require_tool("make", "GNU Make")
        logger.info("Building dbgen in %s", self.dbgen_dir)
        result = run_command(["make", "-C", self.dbgen_dir])
        if not result.ok:
            raise DbgenBuildError(
                f"Failure building the generation utility in {self.dbgen_dir} - Make failure: "
                f"{result.error_summary()}"
            )

        if not self.binary.is_file():
            raise DbgenBuildError(
                f"Although the build of {self.binary} has supposedly succeeded - "
                "the binary is missing."
            )
        return self.binary

    def _configure_with_cmake(self) -> None:
        require_tool("cmake", "CMake build tool")
        result = run_command(
            [
                "cmake",
                f"-DMACHINE={self.platform.value}",  # type: ignore[union-attr]
                f"-DDATABASE={DBGEN_DATABASE}",
                ".",
            ],
            cwd=self.dbgen_dir,
        )
        if not result.ok:
            raise DbgenBuildError(
                f"Failure building the generation utility in {self.dbgen_dir} - during CMake: "
                f"{result.error_summary()}"
            )

    def _generate_makefile(self) -> None:
        suite = self.dbgen_dir / "makefile.suite"
        text = render_makefile(suite.read_text(), self.platform)  # type: ignore[arg-type]
        self.makefile.write_text(text)
        logger.debug("Generated %s from %s", self.makefile, suite)


def validate_dbgen(binary: Path, timeout: float | None = None) -> None:
    """Check that ``binary`` identifies itself as the TPC-H population generator.

    dbgen prints its banner on the first line of its help output; which
    stream it uses varies between versions, and ``-h`` may exit non-zero.
    """
    result = run_command([binary, "-h"], timeout=timeout)
    first_lines = [
        stream.splitlines()[0] for stream in (result.stdout, result.stderr) if stream.strip()
    ]
    if not any(DBGEN_SIGNATURE in line for line in first_lines):
        raise DbgenInvalidError(
            f"Invalid TPC-H data generator binary {binary}; get it at {TPC_URL}"
        )
