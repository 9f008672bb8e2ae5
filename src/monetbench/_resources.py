"""Locating the SQL scripts bundled with monetbench.

The scripts live inside the package, so the lookup has to work from a
source checkout, an installed wheel and a PyInstaller-frozen binary.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _package_dir() -> Path:
    if getattr(sys, "frozen", False):
        # Frozen binaries unpack package data under _MEIPASS
        return Path(sys._MEIPASS) / "monetbench"  # type: ignore[attr-defined]
    return Path(__file__).parent


def get_sql_dir() -> Path:
    """Directory holding the tpch_setup/, jcch_setup/ and imdb_setup/ scripts."""
    return _package_dir() / "sql"
