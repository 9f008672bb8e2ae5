"""Pydantic models for monetbench configuration.

A ``ProvisionConfig`` is built once from the command line (optionally
layered over a YAML file), validated, and then passed read-only through
the provisioning workflow.
"""

from __future__ import annotations

import os
import platform as _platform
from datetime import date
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from monetbench._constants import (
    DB_FARM_ENV_VAR,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CREDENTIALS_FILE,
    DEFAULT_FARM_SUBDIR,
    DEFAULT_LOG_FILE,
    DEFAULT_PORT,
    IMDB_DATASET_URL,
)

# =============================================================================
# Enums
# =============================================================================


class Platform(str, Enum):
    """Build platforms understood by the TPC-H dbgen makefile."""

    ATT = "ATT"
    DOS = "DOS"
    HP = "HP"
    IBM = "IBM"
    ICL = "ICL"
    MVS = "MVS"
    SGI = "SGI"
    SUN = "SUN"
    U2200 = "U2200"
    VMS = "VMS"
    LINUX = "LINUX"
    WIN32 = "WIN32"
    MAC = "MAC"


class Benchmark(str, Enum):
    """Supported benchmark recipes."""

    TPCH = "TPC-H"
    JCCH = "JCC-H"
    JOB = "JOB"


def detect_platform(system: str | None = None) -> Platform | None:
    """Map the host operating system to a dbgen build platform.

    64-bit Windows is reported as WIN32, which is what the dbgen
    sources expect.
    """
    system = system if system is not None else _platform.system()
    if system == "Darwin":
        return Platform.MAC
    if system.startswith("Linux"):
        return Platform.LINUX
    if system == "Windows" or system.startswith(("MINGW32_NT", "MINGW64_NT")):
        return Platform.WIN32
    return None


def default_farm_path() -> Path:
    """$DB_FARM, else ~/db_farms/monetdb."""
    env = os.environ.get(DB_FARM_ENV_VAR)
    if env:
        return Path(env)
    return Path.home() / DEFAULT_FARM_SUBDIR


def default_data_gen_dir(today: date | None = None) -> Path:
    today = today or date.today()
    return Path.cwd() / f"tpch_generated_tables_{today.isoformat()}"


# =============================================================================
# Root configuration
# =============================================================================


class ProvisionConfig(BaseModel):
    """Validated settings for one provisioning run.

    Defaults that depend on the environment (farm path, database name,
    platform, directories) are filled in before validation, so every
    field of a constructed config holds its effective value.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    # What to build
    benchmark: Benchmark = Benchmark.TPCH
    scale_factor: int = Field(default=1, gt=0, description="Amount of data to generate, in GB")

    # Where it goes
    db_farm: Path
    db_name: str = Field(min_length=1)
    port: int = Field(default=DEFAULT_PORT, gt=0, le=65535)

    # Data generation
    platform: Platform | None = None
    dbgen_dir: Path
    data_gen_dir: Path
    sql_dir: Path | None = None

    # Behaviour flags
    recreate: bool = False
    use_generated: bool = False
    keep_raw_tables: bool = False
    verbose: bool = False

    # Ambient
    log_file: Path = Path(DEFAULT_LOG_FILE)
    credentials_file: Path | None = None
    command_timeout: int | None = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)

    @model_validator(mode="before")
    @classmethod
    def apply_environment_defaults(cls, data: object) -> object:
        """Fill environment-derived defaults for fields the caller left unset."""
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        data.setdefault("db_farm", default_farm_path())
        data.setdefault("db_name", f"tpch-sf-{data.get('scale_factor', 1)}")
        data.setdefault("dbgen_dir", Path.cwd() / "dbgen")
        data.setdefault("data_gen_dir", default_data_gen_dir())
        if "platform" not in data:
            data["platform"] = detect_platform()
        return data

    @field_validator("db_farm", "dbgen_dir", "data_gen_dir", "sql_dir", "credentials_file")
    @classmethod
    def make_absolute(cls, v: Path | None) -> Path | None:
        if v is None:
            return v
        return v.expanduser().resolve()

    @model_validator(mode="after")
    def validate_job_data_source(self) -> ProvisionConfig:
        """JOB loads the IMDB dataset, which dbgen cannot produce."""
        if self.benchmark == Benchmark.JOB and not self.use_generated:
            raise ValueError(
                "The JOB benchmark loads the IMDB dataset, which cannot be generated; "
                f"download it from {IMDB_DATASET_URL}, unpack it into the data generation "
                "directory and pass --use-generated"
            )
        return self

    def get_credentials_file(self) -> Path:
        return self.credentials_file or Path.home() / DEFAULT_CREDENTIALS_FILE
