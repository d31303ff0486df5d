"""Main entry point for running keycalc_pkg as a module.

This allows running Keycalc with:
    python -m keycalc_pkg
    python -m keycalc_pkg -k "7 + 8 ="
    python -m keycalc_pkg -e "(2+3)×4"

This is equivalent to running:
    python -m keycalc_pkg.cli
    python keycalc.py
"""

from __future__ import annotations

import sys

from .cli import main_entry

if __name__ == "__main__":
    sys.exit(main_entry())
