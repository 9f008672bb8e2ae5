"""Configuration loader for monetbench."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from monetbench.errors import MonetbenchError

from .schema import ProvisionConfig


class ConfigError(MonetbenchError):
    """Base exception for configuration errors."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when configuration file is not found."""

    pass


class ConfigParseError(ConfigError):
    """Raised when configuration file cannot be parsed."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dictionary.

    Keys may be written with dashes (``db-farm``) or underscores
    (``db_farm``).

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails or the top level is not a mapping
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}")  # noqa: B904

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(f"Expected a mapping at the top level of {path}")
    return {str(k).replace("-", "_"): v for k, v in content.items()}


def validate_config(data: dict[str, Any]) -> ProvisionConfig:
    """Validate a settings dictionary into a ProvisionConfig.

    Raises:
        ConfigValidationError: If validation fails, listing every bad field
    """
    try:
        return ProvisionConfig.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        error_messages = []
        for err in errors:
            loc = ".".join(str(x) for x in err["loc"]) or "config"
            error_messages.append(f"  - {loc}: {err['msg']}")

        raise ConfigValidationError(  # noqa: B904
            "Configuration validation failed:\n" + "\n".join(error_messages),
            errors=[dict(e) for e in errors],  # type: ignore[call-overload]
        )


def load_config(path: str | Path) -> ProvisionConfig:
    """Load and validate configuration from a YAML file."""
    return validate_config(load_yaml(Path(path)))


def build_config(
    overrides: dict[str, Any] | None = None,
    config_path: Path | None = None,
) -> ProvisionConfig:
    """Build the run configuration from an optional file plus command-line values.

    Command-line values that are ``None`` (not given) leave the file value,
    or the default, in place.

    Args:
        overrides: Values from the command line
        config_path: Optional YAML file with base values

    Returns:
        Validated ProvisionConfig
    """
    data: dict[str, Any] = load_yaml(config_path) if config_path else {}
    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value
    return validate_config(data)


def generate_example_config_yaml() -> str:
    """Generate example configuration YAML with comments.

    Every option is shown commented-out with its default, so a fresh file
    behaves exactly like running ``monetbench setup`` without flags.
    """
    return """# monetbench configuration
# =======================
# Values given on the command line override the ones in this file.
# Commented-out options show their defaults.

# Benchmark recipe: TPC-H, JCC-H or JOB
# benchmark: TPC-H

# Amount of data to generate, in GB (positive integer)
# scale_factor: 1

# Root directory of the MonetDB DB farm (default: $DB_FARM, else ~/db_farms/monetdb)
# db_farm: ~/db_farms/monetdb

# Database name within the farm (default: tpch-sf-<scale_factor>)
# db_name: tpch-sf-1

# Port for a newly created farm; an existing farm keeps its own port
# port: 50000

# dbgen sources/binary and the directory to generate table files into
# dbgen_dir: ./dbgen
# data_gen_dir: ./tpch_generated_tables_<today>

# Platform for building dbgen: ATT DOS HP IBM ICL MVS SGI SUN U2200 VMS LINUX WIN32 MAC
# (default: detected from the host OS)
# platform: LINUX

# Directory holding tpch_setup/, jcch_setup/ and imdb_setup/ SQL scripts
# (default: the scripts bundled with monetbench)
# sql_dir: ./sql

# recreate: false          # drop and recreate an existing database
# use_generated: false     # load table files already present in data_gen_dir
# keep_raw_tables: false   # keep data_gen_dir after loading
# verbose: false

# log_file: monetbench.log
# credentials_file: ~/.monetdb

# Timeout in seconds for monetdbd/monetdb admin calls
# command_timeout: 300
"""
