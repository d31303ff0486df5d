#!/usr/bin/env python3
"""
Keycalc - Keystroke Calculator

Main entry point for the Keycalc calculator application.
This file serves as a thin wrapper that delegates all functionality
to the keycalc_pkg package.

Usage:
    python keycalc.py                       # Interactive REPL
    python keycalc.py -k "7 + 8 ="          # Run a key sequence
    python keycalc.py -e "(2+3)×4"          # Evaluate expression
    python keycalc.py --help                # Show help

For PyInstaller:
    pyinstaller --onefile --console --collect-all sympy keycalc.py
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for Keycalc.

    Delegates all functionality to the keycalc_pkg.cli module,
    which handles argument parsing, key dispatch, and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        from keycalc_pkg.cli import main_entry

        return main_entry(sys.argv[1:])
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 1
    except ImportError as e:
        print(f"Error: Failed to import keycalc_pkg: {e}")
        print("Please ensure all dependencies are installed: pip install -e .")
        return 1


if __name__ == "__main__":
    sys.exit(main())
