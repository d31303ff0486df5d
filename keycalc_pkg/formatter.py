"""Display formatting for calculator numbers.

NumberFormatter turns doubles into the strings shown on the calculator
display and reads them back. Rules:
- NaN becomes the error sentinel, infinities become "∞" / "-∞"
- magnitudes in (0, 1e-7) or above 1e10 use scientific notation with a
  lowercase "e" and at most 10 fraction digits in the mantissa
- everything else is fixed notation with at most 15 fraction digits,
  trailing zeros trimmed, using the configured decimal separator
"""

from __future__ import annotations

import locale
import math

from . import config


def resolve_decimal_separator(setting: str | None = None) -> str:
    """Return the decimal separator for a config setting ("locale" asks the host)."""
    setting = config.DECIMAL_SEPARATOR if setting is None else setting
    if setting == "locale":
        return locale.localeconv().get("decimal_point") or "."
    return setting or "."


class NumberFormatter:
    """Formats doubles for display and parses display text back to doubles."""

    def __init__(
        self,
        decimal_separator: str | None = None,
        max_fraction_digits: int | None = None,
        scientific_fraction_digits: int | None = None,
        lower_bound: float | None = None,
        upper_bound: float | None = None,
        error_text: str | None = None,
    ):
        self.decimal_separator = resolve_decimal_separator(decimal_separator)
        self.max_fraction_digits = (
            config.MAX_FRACTION_DIGITS
            if max_fraction_digits is None
            else max_fraction_digits
        )
        self.scientific_fraction_digits = (
            config.SCIENTIFIC_FRACTION_DIGITS
            if scientific_fraction_digits is None
            else scientific_fraction_digits
        )
        self.lower_bound = (
            config.SCIENTIFIC_LOWER_BOUND if lower_bound is None else lower_bound
        )
        self.upper_bound = (
            config.SCIENTIFIC_UPPER_BOUND if upper_bound is None else upper_bound
        )
        self.error_text = config.ERROR_SENTINEL if error_text is None else error_text

    def format(self, number: float) -> str:
        """Format a number for display.

        Args:
            number: Value to format

        Returns:
            Display string, or a sentinel for non-finite values
        """
        number = float(number)
        if math.isnan(number):
            return self.error_text
        if math.isinf(number):
            return (
                config.POSITIVE_INFINITY_TEXT
                if number > 0
                else config.NEGATIVE_INFINITY_TEXT
            )
        if number == 0:
            return "0"

        magnitude = abs(number)
        if magnitude < self.lower_bound or magnitude > self.upper_bound:
            return self._format_scientific(number)
        return self._format_fixed(number, magnitude)

    def _format_fixed(self, number: float, magnitude: float) -> str:
        integer_digits = max(math.floor(math.log10(magnitude)) + 1, 1)
        fraction_digits = max(
            0, min(self.max_fraction_digits, config.SIGNIFICANT_DIGITS - integer_digits)
        )
        text = f"{number:.{fraction_digits}f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text in ("-0", ""):
            text = "0"
        return text.replace(".", self.decimal_separator)

    def _format_scientific(self, number: float) -> str:
        mantissa, exponent = f"{number:.{self.scientific_fraction_digits}e}".split("e")
        if "." in mantissa:
            mantissa = mantissa.rstrip("0").rstrip(".")
        mantissa = mantissa.replace(".", self.decimal_separator)
        return f"{mantissa}e{int(exponent)}"

    def parse(self, text: str) -> float | None:
        """Read display text back into a number.

        Returns:
            The value, or None when the text is not a number (error sentinel,
            an open bracket expression, empty text)
        """
        if text is None:
            return None
        cleaned = text.strip()
        if cleaned == config.POSITIVE_INFINITY_TEXT:
            return math.inf
        if cleaned == config.NEGATIVE_INFINITY_TEXT:
            return -math.inf
        if self.decimal_separator != ".":
            cleaned = cleaned.replace(self.decimal_separator, ".")
        if cleaned in (".", "-."):
            return 0.0
        if not config.SIGNED_NUMBER_REGEX.fullmatch(cleaned):
            return None
        return float(cleaned)

    def is_sentinel(self, text: str) -> bool:
        return text in (
            self.error_text,
            config.POSITIVE_INFINITY_TEXT,
            config.NEGATIVE_INFINITY_TEXT,
        )
