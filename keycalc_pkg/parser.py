"""Input scanning and bracket handling module.

This module handles:
- Tokenizing arithmetic text (numbers, + - × ÷, brackets) with unary signs
  folded into the following number
- Balancing checks and repair for parentheses
- Locating the trailing number of a partially typed expression
- Display helpers (superscripts, powers)
"""

from __future__ import annotations

import re

from .config import (
    BINARY_OPERATORS,
    MAX_INPUT_LENGTH,
    NUMBER_REGEX,
    OPERATOR_ALIASES,
    TRAILING_NUMBER_REGEX,
)
from .types import ParseError, Token, TokenKind, ValidationError


def superscriptify(input_str: str) -> str:
    """Convert numeric string to Unicode superscript characters.

    Args:
        input_str: Input string with digits and '-' (e.g., "123", "-5")

    Returns:
        String with superscript Unicode characters (e.g., "¹²³", "⁻⁵")
    """
    mapping = {
        "0": "⁰",
        "1": "¹",
        "2": "²",
        "3": "³",
        "4": "⁴",
        "5": "⁵",
        "6": "⁶",
        "7": "⁷",
        "8": "⁸",
        "9": "⁹",
        "-": "⁻",
        "n": "ⁿ",
    }
    return "".join(mapping.get(char, char) for char in input_str)


def format_power(base: str, exponent: str) -> str:
    """Render base^exponent, using superscripts when the exponent allows it.

    Args:
        base: Base text (e.g., "10", "e")
        exponent: Exponent text as shown on the display (e.g., "5", "-2", "2.5")

    Returns:
        "10⁵" for integral exponents, "10^(2.5)" otherwise
    """
    if re.fullmatch(r"-?\d+", exponent):
        return f"{base}{superscriptify(exponent)}"
    return f"{base}^({exponent})"


def bracket_depth(input_str: str) -> int:
    """Count of unmatched '(' minus ')' scanning left to right (never below zero)."""
    depth = 0
    for char in input_str:
        if char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1
    return depth


def has_brackets(input_str: str) -> bool:
    return "(" in input_str or ")" in input_str


def is_balanced(input_str: str) -> tuple[bool, int | None]:
    """Check if parentheses are balanced. Returns (is_balanced, error_position)."""
    stack: list[int] = []
    for i, char in enumerate(input_str):
        if char == "(":
            stack.append(i)
        elif char == ")":
            if not stack:
                return False, i
            stack.pop()
    if stack:
        return False, stack[0]  # Return position of first unmatched
    return True, None


def repair_brackets(input_str: str) -> str:
    """Drop closing brackets without a partner and auto-close open ones.

    Args:
        input_str: Possibly unbalanced expression (e.g., "(3 + 4", "3 + 4)")

    Returns:
        Balanced expression (e.g., "(3 + 4)", "3 + 4")
    """
    kept: list[str] = []
    depth = 0
    for char in input_str:
        if char == ")":
            if depth == 0:
                continue
            depth -= 1
        elif char == "(":
            depth += 1
        kept.append(char)
    return "".join(kept).rstrip() + ")" * depth


def is_single_group(input_str: str) -> bool:
    """True when the whole text is one bracket group, e.g. "(2 + (3 × 4))"."""
    text = input_str.strip()
    if not text.startswith("(") or not text.endswith(")"):
        return False
    depth = 0
    for i, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i == len(text) - 1
    return False


def trailing_number(input_str: str, decimal_separator: str = ".") -> str:
    """Return the number being typed at the end of the text ('' if none).

    A '-' counts as part of the number only when it is glued to the digits,
    so "(2 - 5" yields "5" and "(-5" yields "-5".
    """
    text = input_str
    if decimal_separator != ".":
        text = text.replace(decimal_separator, ".")
    match = TRAILING_NUMBER_REGEX.search(text)
    if not match:
        return ""
    number = match.group(0)
    start = match.start()
    if number.startswith("-") and start > 0 and text[start - 1].isdigit():
        number = number[1:]
    if decimal_separator != ".":
        number = number.replace(".", decimal_separator)
    return number


def normalize_operator(symbol: str) -> str:
    """Map ASCII/typographic aliases onto the keypad operator symbols."""
    symbol = OPERATOR_ALIASES.get(symbol, symbol)
    if symbol not in BINARY_OPERATORS:
        raise ValidationError(f"Unknown operator: {symbol}", "UNKNOWN_OPERATOR")
    return symbol


def tokenize(expression: str, decimal_separator: str = ".") -> list[Token]:
    """Split an arithmetic expression into tokens.

    Whitespace is ignored. A '+' or '-' at the start, after '(' or after
    another operator is a sign: it is folded into the following number, or
    carried as the value of a following OPEN token, so that the result
    only ever contains binary operators.

    Args:
        expression: Text such as "(2 + 3) × -4"
        decimal_separator: Separator used by the display

    Returns:
        List of tokens

    Raises:
        ValidationError: input too long
        ParseError: unknown character or dangling sign
    """
    if len(expression) > MAX_INPUT_LENGTH:
        raise ValidationError(
            f"Input too long (>{MAX_INPUT_LENGTH} characters)", "TOO_LONG"
        )
    text = re.sub(r"\s+", "", expression)
    if decimal_separator != ".":
        text = text.replace(decimal_separator, ".")

    tokens: list[Token] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "(":
            tokens.append(Token(TokenKind.OPEN, char))
            i += 1
            continue
        if char == ")":
            tokens.append(Token(TokenKind.CLOSE, char))
            i += 1
            continue

        symbol = OPERATOR_ALIASES.get(char, char)
        if symbol in BINARY_OPERATORS:
            expects_operand = not tokens or tokens[-1].kind in (
                TokenKind.OPERATOR,
                TokenKind.OPEN,
            )
            if expects_operand and symbol in ("+", "-"):
                sign = -1.0 if symbol == "-" else 1.0
                i += 1
                # Collapse runs of signs such as "--5"
                while i < len(text) and OPERATOR_ALIASES.get(text[i], text[i]) in ("+", "-"):
                    if OPERATOR_ALIASES.get(text[i], text[i]) == "-":
                        sign = -sign
                    i += 1
                match = NUMBER_REGEX.match(text, i)
                if match:
                    value = sign * float(match.group(0))
                    tokens.append(Token(TokenKind.NUMBER, match.group(0), value))
                    i = match.end()
                elif i < len(text) and text[i] == "(":
                    # The sign rides on the group and applies once it is reduced
                    tokens.append(Token(TokenKind.OPEN, "(", sign))
                    i += 1
                else:
                    raise ParseError(f"Dangling sign at position {i}", "DANGLING_SIGN")
                continue
            tokens.append(Token(TokenKind.OPERATOR, symbol))
            i += 1
            continue

        match = NUMBER_REGEX.match(text, i)
        if match:
            tokens.append(Token(TokenKind.NUMBER, match.group(0), float(match.group(0))))
            i = match.end()
            continue

        raise ParseError(f"Unexpected character {char!r} at position {i}", "BAD_CHARACTER")
    return tokens
