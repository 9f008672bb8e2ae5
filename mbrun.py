#!/usr/bin/env python3
"""Monetbench CLI entrypoint -- run without pip install.

Usage:
    python mbrun.py setup --scale-factor 10
    python mbrun.py --help
"""

import sys
from pathlib import Path

# Add src/ to import path so the monetbench package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from monetbench.cli import app

if __name__ == "__main__":
    app()
