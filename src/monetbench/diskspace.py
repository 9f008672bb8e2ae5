"""Free disk space checks ahead of data generation and loading."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from monetbench.errors import InsufficientSpaceError

logger = logging.getLogger(__name__)

GIB = 1024**3

# Table files and the farm often share a partition, so ask for twice the data size
SPACE_FACTOR = 2


def nearest_existing_dir(path: Path) -> Path:
    """``path`` itself if it exists, else its closest existing ancestor."""
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path(path.anchor or "/")


def available_gib(path: Path) -> int:
    """Whole gibibytes (2^30 bytes) available to unprivileged users at ``path``."""
    usage = shutil.disk_usage(nearest_existing_dir(path))
    return usage.free // GIB


def required_gib(scale_factor: int) -> int:
    return SPACE_FACTOR * scale_factor


def check_free_space(path: Path, scale_factor: int, purpose: str = "the benchmark data") -> int:
    """Fail unless the device holding ``path`` has more than 2*scale_factor GiB free.

    Args:
        path: Directory about to be written to (need not exist yet)
        scale_factor: Benchmark scale factor
        purpose: What the space is for, for the error message

    Returns:
        Available GiB

    Raises:
        InsufficientSpaceError: If available space <= required space
    """
    needed = required_gib(scale_factor)
    available = available_gib(path)
    logger.debug("Disk space at %s: need more than %d GiB, have %d GiB", path, needed, available)
    if available <= needed:
        raise InsufficientSpaceError(
            f"Not enough disk space on the device holding {path} for {purpose}: "
            f"We need {needed} GiB but only have {available} GiB.",
            needed_gib=needed,
            available_gib=available,
        )
    return available
