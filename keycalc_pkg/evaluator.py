"""Bracket-aware arithmetic evaluation.

BracketExpressionEvaluator collapses a textual expression made of decimal
numbers, + - × ÷ and parentheses into a single number:

1. tokenize (whitespace stripped, signs folded into numbers or groups)
2. while both brackets remain: take the first ')', pair it with the
   nearest '(' before it, reduce the group and splice the value back in;
   a ')' without a partner is dropped
3. reduce what is left: × and ÷ left to right, then + and - left to right
4. the remainder must be exactly one number

Failures are returned as EvalResult values, never raised.
"""

from __future__ import annotations

import math

from .logging_config import get_logger
from .parser import tokenize
from .types import ErrorKind, EvalResult, ParseError, Token, TokenKind, ValidationError

logger = get_logger("evaluator")

_MULTIPLICATIVE = ("×", "÷")
_ADDITIVE = ("+", "-")


def perform_binary_op(operator: str | None, a: float, b: float | None) -> float:
    """Apply a keypad binary operator.

    Division by zero yields NaN rather than raising; an unknown or missing
    operator (or missing operand) returns ``a`` unchanged.
    """
    if operator is None or b is None:
        return a
    if operator == "+":
        return a + b
    if operator == "-":
        return a - b
    if operator == "×":
        return a * b
    if operator == "÷":
        return a / b if b != 0 else math.nan
    return a


class _DivisionByZero(Exception):
    pass


class BracketExpressionEvaluator:
    """Collapses bracketed arithmetic text to a number."""

    def __init__(self, decimal_separator: str = "."):
        self.decimal_separator = decimal_separator

    def evaluate(self, expression: str) -> EvalResult:
        """Evaluate an expression.

        Args:
            expression: Text such as "((1+2)×(3+4))"

        Returns:
            EvalResult with the value, or with DIVISION_BY_ZERO /
            MALFORMED_EXPRESSION
        """
        if expression is None or not expression.strip():
            return EvalResult.failure(ErrorKind.MALFORMED_EXPRESSION, "Empty expression")
        try:
            tokens = tokenize(expression, self.decimal_separator)
            value = self._collapse(tokens)
        except _DivisionByZero:
            logger.debug("Division by zero while evaluating %r", expression)
            return EvalResult.failure(ErrorKind.DIVISION_BY_ZERO, "Division by zero")
        except (ParseError, ValidationError) as e:
            logger.debug("Cannot collapse %r: %s", expression, e)
            return EvalResult.failure(ErrorKind.MALFORMED_EXPRESSION, str(e))
        return EvalResult.success(value)

    def _collapse(self, tokens: list[Token]) -> float:
        tokens = list(tokens)
        while self._contains(tokens, TokenKind.OPEN) and self._contains(
            tokens, TokenKind.CLOSE
        ):
            close_index = next(
                i for i, token in enumerate(tokens) if token.kind is TokenKind.CLOSE
            )
            open_index = None
            for i in range(close_index - 1, -1, -1):
                if tokens[i].kind is TokenKind.OPEN:
                    open_index = i
                    break
            if open_index is None:
                # Stray ')' with nothing to close
                del tokens[close_index]
                continue
            value = self.reduce_flat(tokens[open_index + 1 : close_index])
            if tokens[open_index].value is not None:
                value *= tokens[open_index].value
            tokens[open_index : close_index + 1] = [
                Token(TokenKind.NUMBER, repr(value), value)
            ]
        return self.reduce_flat(tokens)

    @staticmethod
    def _contains(tokens: list[Token], kind: TokenKind) -> bool:
        return any(token.kind is kind for token in tokens)

    def reduce_flat(self, tokens: list[Token]) -> float:
        """Reduce a bracket-free token list honoring × ÷ before + -.

        Raises:
            ParseError: the tokens do not alternate number/operator/number
            _DivisionByZero: a ÷ with a zero right operand
        """
        if not tokens:
            raise ParseError("Empty group", "EMPTY_GROUP")
        values: list[float] = []
        operators: list[str] = []
        for position, token in enumerate(tokens):
            expect_number = position % 2 == 0
            if expect_number and token.kind is TokenKind.NUMBER:
                values.append(token.value)
            elif not expect_number and token.kind is TokenKind.OPERATOR:
                operators.append(token.text)
            else:
                raise ParseError(
                    f"Unexpected {token.kind.value} {token.text!r}", "UNEXPECTED_TOKEN"
                )
        if len(values) != len(operators) + 1:
            raise ParseError("Expression ends with an operator", "TRAILING_OPERATOR")

        values, operators = self._fold(values, operators, _MULTIPLICATIVE)
        values, operators = self._fold(values, operators, _ADDITIVE)
        return values[0]

    @staticmethod
    def _fold(
        values: list[float], operators: list[str], level: tuple[str, ...]
    ) -> tuple[list[float], list[str]]:
        folded_values = [values[0]]
        folded_operators: list[str] = []
        for operator, right in zip(operators, values[1:]):
            if operator in level:
                if operator == "÷" and right == 0:
                    raise _DivisionByZero()
                folded_values[-1] = perform_binary_op(operator, folded_values[-1], right)
            else:
                folded_operators.append(operator)
                folded_values.append(right)
        return folded_values, folded_operators
