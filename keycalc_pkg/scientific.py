"""Unary scientific functions of the keypad.

Trigonometric, logarithmic and root functions are evaluated symbolically
with SymPy on the exact decimal value of the input and only then turned
into a double, so textbook values come out exact: sin(30°) is 0.5,
cos(90°) is 0, log(1000) is 3 and ∛(-8) is -2. Power-type functions stay
in IEEE double arithmetic.
"""

from __future__ import annotations

import math

import sympy as sp

from . import config
from .parser import format_power
from .types import AngleMode, ErrorKind


class ScientificFunctionError(Exception):
    """Raised for an input outside a function's domain."""

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)


def _exact(value: float) -> sp.Rational:
    """The decimal a user sees for a double, as an exact rational."""
    return sp.Rational(repr(value))


def _to_float(expr: sp.Expr, name: str) -> float:
    if expr.has(sp.zoo, sp.nan):
        raise ScientificFunctionError(ErrorKind.DOMAIN_ERROR, f"{name} is undefined here")
    try:
        return float(expr)
    except TypeError as e:
        # Complex result, e.g. √ of a negative number
        raise ScientificFunctionError(ErrorKind.DOMAIN_ERROR, f"{name}: {e}") from e


def factorial(value: float) -> float:
    """n! for integers n >= 0; overflows to infinity past FACTORIAL_LIMIT."""
    if value < 0 or not float(value).is_integer():
        raise ScientificFunctionError(
            ErrorKind.INVALID_FACTORIAL_ARGUMENT,
            "Factorial is defined for non-negative integers only",
        )
    if value > config.FACTORIAL_LIMIT:
        return math.inf
    return float(math.factorial(int(value)))


def _power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError as e:
        raise ScientificFunctionError(ErrorKind.DOMAIN_ERROR, str(e)) from e


def _exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


def _reciprocal(value: float) -> float:
    if value == 0:
        return math.copysign(math.inf, value)
    return 1 / value


_DOUBLE_FUNCTIONS = {
    "1/x": _reciprocal,
    "eˣ": _exp,
    "x²": lambda value: _power(value, 2),
    "x³": lambda value: _power(value, 3),
    "10ˣ": lambda value: _power(10, value),
    # Without a second operand the power key squares its input
    "xʸ": lambda value: _power(value, 2),
    "x!": factorial,
}


def is_supported(name: str) -> bool:
    return name in config.SCIENTIFIC_FUNCTIONS or name in _DOUBLE_FUNCTIONS


def apply_function(
    name: str, value: float, angle_mode: AngleMode = AngleMode.RADIANS
) -> float:
    """Apply a scientific function to a display value.

    Args:
        name: Keypad label (sin, cos, tan, ln, log, √, ∛, 1/x, eˣ, x², x³,
            10ˣ, xʸ, x!)
        value: Input value
        angle_mode: Unit of the trigonometric functions' input

    Returns:
        The result as a double (may be ±inf)

    Raises:
        ScientificFunctionError: input outside the function's domain
        KeyError: unknown function name
    """
    if not math.isfinite(value):
        raise ScientificFunctionError(
            ErrorKind.DOMAIN_ERROR, f"{name} of a non-finite value"
        )
    if name in _DOUBLE_FUNCTIONS:
        return _DOUBLE_FUNCTIONS[name](value)

    function = config.SCIENTIFIC_FUNCTIONS[name]
    if name in ("ln", "log") and value == 0:
        return -math.inf
    argument = _exact(value)
    if name in config.TRIGONOMETRIC_FUNCTIONS and angle_mode is AngleMode.DEGREES:
        argument = argument * sp.pi / 180
    return _to_float(function(argument), name)


def constant_value(name: str) -> float:
    """Double value of a keypad constant (π or e)."""
    return float(config.CONSTANTS[name])


def describe(name: str, operand: str) -> str:
    """Human-readable form of an application, e.g. "sin(90)" or "5²"."""
    if name == "x²" or name == "xʸ":
        return format_power(_grouped(operand), "2")
    if name == "x³":
        return format_power(_grouped(operand), "3")
    if name == "10ˣ":
        return format_power("10", operand)
    if name == "eˣ":
        return format_power("e", operand)
    if name == "x!":
        return f"{_grouped(operand)}!"
    if name == "1/x":
        return f"1/({operand})"
    return f"{name}({operand})"


def _grouped(operand: str) -> str:
    return f"({operand})" if operand.startswith("-") else operand
