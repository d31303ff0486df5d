"""Centralized configuration for Keycalc.

This module defines:
- Display formatting limits (notation thresholds, fraction digits, sentinels)
- History store limits and location
- Engine defaults (angle mode, unparsable-operand policy)
- Scientific functions bound to SymPy callables
- Regex patterns for number scanning

Configuration can be overridden via:
- CLI flags (see cli.py)
- Environment variables (prefixed with KEYCALC_)
"""

import os
import re
from pathlib import Path

import sympy as sp

# Version is defined in pyproject.toml [project] section
try:
    import importlib.metadata

    VERSION = importlib.metadata.version("keycalc")
except Exception:
    # Fallback if package not installed
    VERSION = "1.0.0"

# Display sentinels
ERROR_SENTINEL = os.getenv("KEYCALC_ERROR_SENTINEL", "Error")
POSITIVE_INFINITY_TEXT = "∞"
NEGATIVE_INFINITY_TEXT = "-∞"

# Number formatting
SCIENTIFIC_LOWER_BOUND = float(
    os.getenv("KEYCALC_SCIENTIFIC_LOWER_BOUND", "1e-7")
)  # magnitudes below this use scientific notation
SCIENTIFIC_UPPER_BOUND = float(
    os.getenv("KEYCALC_SCIENTIFIC_UPPER_BOUND", "1e10")
)  # magnitudes above this use scientific notation
MAX_FRACTION_DIGITS = int(os.getenv("KEYCALC_MAX_FRACTION_DIGITS", "15"))
SCIENTIFIC_FRACTION_DIGITS = int(
    os.getenv("KEYCALC_SCIENTIFIC_FRACTION_DIGITS", "10")
)
SIGNIFICANT_DIGITS = int(
    os.getenv("KEYCALC_SIGNIFICANT_DIGITS", "16")
)  # a double carries ~16 significant decimal digits
DECIMAL_SEPARATOR = os.getenv(
    "KEYCALC_DECIMAL_SEPARATOR", "."
)  # "locale" selects the host locale's decimal point

# History
HISTORY_LIMIT = int(os.getenv("KEYCALC_HISTORY_LIMIT", "100"))
HISTORY_FILE = Path(
    os.getenv("KEYCALC_HISTORY_FILE", str(Path.home() / ".keycalc" / "history.json"))
)
HISTORY_VERSION = 1  # Increment when the history file format changes

# Engine defaults
DEFAULT_ANGLE_MODE = os.getenv("KEYCALC_ANGLE_MODE", "rad")  # "rad" or "deg"
UNPARSABLE_OPERAND_POLICY = os.getenv(
    "KEYCALC_UNPARSABLE_OPERAND_POLICY", "ignore"
)  # "ignore" (no-op) or "zero" (read as 0)
FACTORIAL_LIMIT = int(
    os.getenv("KEYCALC_FACTORIAL_LIMIT", "170")
)  # 171! overflows a double
MAX_INPUT_LENGTH = int(os.getenv("KEYCALC_MAX_INPUT_LENGTH", "1000"))  # characters

# Logging
LOG_LEVEL = os.getenv("KEYCALC_LOG_LEVEL", "WARNING")

BINARY_OPERATORS = ("+", "-", "×", "÷")

# ASCII and typographic aliases accepted by the tokenizer
OPERATOR_ALIASES = {
    "*": "×",
    "x": "×",
    "/": "÷",
    "−": "-",
}

SCIENTIFIC_FUNCTIONS = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "ln": sp.log,
    "log": lambda arg: sp.log(arg, 10),
    "√": sp.sqrt,
    "∛": lambda arg: sp.real_root(arg, 3),
}

TRIGONOMETRIC_FUNCTIONS = ("sin", "cos", "tan")

CONSTANTS = {
    "π": sp.pi,
    "e": sp.E,
}

NUMBER_PATTERN = r"(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?"
NUMBER_REGEX = re.compile(NUMBER_PATTERN)
SIGNED_NUMBER_REGEX = re.compile(rf"-?{NUMBER_PATTERN}")
TRAILING_NUMBER_REGEX = re.compile(r"-?[\d.]+(?:e[+-]?\d+)?$")
