"""Benchmark data generation for monetbench."""

from .builder import (
    DBGEN_SIGNATURE,
    DatagenError,
    Dbgen,
    DbgenBuilder,
    DbgenBuildError,
    DbgenInvalidError,
    render_makefile,
    validate_dbgen,
)
from .runner import (
    DataGenerator,
    DbgenRunError,
    check_generation_target,
    remove_data_dir,
    verify_pregenerated,
)

__all__ = [
    "DBGEN_SIGNATURE",
    "Dbgen",
    "DbgenBuilder",
    "DataGenerator",
    "render_makefile",
    "validate_dbgen",
    "check_generation_target",
    "verify_pregenerated",
    "remove_data_dir",
    # Exceptions
    "DatagenError",
    "DbgenBuildError",
    "DbgenInvalidError",
    "DbgenRunError",
]
