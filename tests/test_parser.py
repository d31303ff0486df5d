"""Unit tests for parser module."""

import unittest

from keycalc_pkg.config import MAX_INPUT_LENGTH
from keycalc_pkg.parser import (
    bracket_depth,
    format_power,
    is_balanced,
    is_single_group,
    normalize_operator,
    repair_brackets,
    superscriptify,
    tokenize,
    trailing_number,
)
from keycalc_pkg.types import ParseError, TokenKind, ValidationError


class TestTokenize(unittest.TestCase):
    """Test tokenizing arithmetic text."""

    def test_basic_arithmetic(self):
        tokens = tokenize("2 + 3 × 4")
        self.assertEqual(
            [t.kind for t in tokens],
            [
                TokenKind.NUMBER,
                TokenKind.OPERATOR,
                TokenKind.NUMBER,
                TokenKind.OPERATOR,
                TokenKind.NUMBER,
            ],
        )
        self.assertEqual([t.value for t in tokens[::2]], [2.0, 3.0, 4.0])

    def test_ascii_aliases(self):
        tokens = tokenize("2*3/4")
        self.assertEqual([t.text for t in tokens if t.kind is TokenKind.OPERATOR], ["×", "÷"])

    def test_brackets(self):
        tokens = tokenize("(2+3)")
        self.assertEqual(tokens[0].kind, TokenKind.OPEN)
        self.assertEqual(tokens[-1].kind, TokenKind.CLOSE)

    def test_decimal_numbers(self):
        tokens = tokenize("1.5 + .25")
        self.assertEqual(tokens[0].value, 1.5)
        self.assertEqual(tokens[2].value, 0.25)

    def test_unary_minus_folded_into_number(self):
        tokens = tokenize("(2 + 3) × -4")
        self.assertEqual(tokens[-1].kind, TokenKind.NUMBER)
        self.assertEqual(tokens[-1].value, -4.0)
        operators = [t.text for t in tokens if t.kind is TokenKind.OPERATOR]
        self.assertEqual(operators, ["+", "×"])

    def test_leading_minus(self):
        tokens = tokenize("-5 + 2")
        self.assertEqual(tokens[0].value, -5.0)
        self.assertEqual(len(tokens), 3)

    def test_sign_runs_collapse(self):
        tokens = tokenize("--5")
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].value, 5.0)

    def test_minus_before_group(self):
        tokens = tokenize("8 ÷ -(2)")
        self.assertEqual([t.kind for t in tokens][2], TokenKind.OPEN)
        self.assertEqual(tokens[2].value, -1.0)
        self.assertEqual(len(tokens), 5)

    def test_plain_group_has_no_sign(self):
        self.assertIsNone(tokenize("(2)")[0].value)

    def test_comma_separator(self):
        tokens = tokenize("1,5 + 1", decimal_separator=",")
        self.assertEqual(tokens[0].value, 1.5)

    def test_bad_character(self):
        with self.assertRaises(ParseError) as ctx:
            tokenize("2 $ 3")
        self.assertEqual(ctx.exception.code, "BAD_CHARACTER")

    def test_dangling_sign(self):
        with self.assertRaises(ParseError) as ctx:
            tokenize("(-")
        self.assertEqual(ctx.exception.code, "DANGLING_SIGN")

    def test_input_length_limit(self):
        with self.assertRaises(ValidationError) as ctx:
            tokenize("1" * (MAX_INPUT_LENGTH + 1))
        self.assertEqual(ctx.exception.code, "TOO_LONG")


class TestBrackets(unittest.TestCase):
    """Test bracket helpers."""

    def test_parentheses_balancing(self):
        self.assertEqual(is_balanced("((1))"), (True, None))
        self.assertEqual(is_balanced("(1+2"), (False, 0))
        self.assertEqual(is_balanced("1+2)"), (False, 3))

    def test_bracket_depth(self):
        self.assertEqual(bracket_depth("((1)"), 1)
        self.assertEqual(bracket_depth("(1)"), 0)
        self.assertEqual(bracket_depth(")("), 1)

    def test_repair_auto_closes(self):
        self.assertEqual(repair_brackets("(3 + 4"), "(3 + 4)")
        self.assertEqual(repair_brackets("((1"), "((1))")

    def test_repair_drops_stray_close(self):
        self.assertEqual(repair_brackets("3 + 4)"), "3 + 4")

    def test_single_group(self):
        self.assertTrue(is_single_group("(2 + (3 × 4))"))
        self.assertFalse(is_single_group("(1) + (2)"))
        self.assertFalse(is_single_group("3 × (4)"))
        self.assertFalse(is_single_group("((1 + 2)"))


class TestTrailingNumber(unittest.TestCase):
    def test_plain_number(self):
        self.assertEqual(trailing_number("12.5"), "12.5")

    def test_after_operator(self):
        self.assertEqual(trailing_number("(2 - 5"), "5")

    def test_glued_sign(self):
        self.assertEqual(trailing_number("(-5"), "-5")

    def test_minus_after_digit_is_operator(self):
        self.assertEqual(trailing_number("3-5"), "5")

    def test_nothing_typed(self):
        self.assertEqual(trailing_number("(2 + "), "")

    def test_comma_separator(self):
        self.assertEqual(trailing_number("(1,5", ","), "1,5")


class TestDisplayHelpers:
    def test_superscriptify(self):
        assert superscriptify("-12") == "⁻¹²"

    def test_format_power_integral(self):
        assert format_power("10", "5") == "10⁵"

    def test_format_power_fractional(self):
        assert format_power("10", "2.5") == "10^(2.5)"

    def test_normalize_operator(self):
        assert normalize_operator("*") == "×"
        assert normalize_operator("/") == "÷"
        assert normalize_operator("−") == "-"
        assert normalize_operator("+") == "+"

    def test_normalize_unknown_operator(self):
        import pytest

        with pytest.raises(ValidationError) as exc_info:
            normalize_operator("^")
        assert exc_info.value.code == "UNKNOWN_OPERATOR"
