"""Monetbench configuration module."""

from .loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    build_config,
    generate_example_config_yaml,
    load_config,
    validate_config,
)
from .schema import (
    Benchmark,
    Platform,
    ProvisionConfig,
    default_data_gen_dir,
    default_farm_path,
    detect_platform,
)

__all__ = [
    # Config classes
    "ProvisionConfig",
    # Enums
    "Benchmark",
    "Platform",
    # Defaults
    "default_data_gen_dir",
    "default_farm_path",
    "detect_platform",
    # Loader functions
    "build_config",
    "load_config",
    "validate_config",
    "generate_example_config_yaml",
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
]
