"""Keystroke-driven calculator state machine.

ExpressionEngine owns one CalculatorState and exposes one method per input
class (digit, operator, equals, clear, sign, percent, scientific function,
memory, parenthesis). Binary operations fold immediately from left to
right; anything typed inside parentheses is kept as text and collapsed by
the BracketExpressionEvaluator, which honors × and ÷ before + and -.

Failures never raise out of an input method: division by zero and domain
errors show the error sentinel, malformed bracket text leaves the state
untouched, and unparsable operands follow UNPARSABLE_OPERAND_POLICY.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from . import config
from .evaluator import BracketExpressionEvaluator, perform_binary_op
from .formatter import NumberFormatter
from .formula import Formula
from .history import HistoryStore, InMemoryHistoryStore
from .logging_config import get_logger
from .parser import (
    bracket_depth,
    has_brackets,
    is_single_group,
    normalize_operator,
    repair_brackets,
    trailing_number,
)
from .scientific import (
    ScientificFunctionError,
    apply_function,
    constant_value,
    describe,
    is_supported,
)
from .types import (
    AngleMode,
    CalculationHistoryEntry,
    CalculatorMode,
    ErrorKind,
    EvalResult,
)

logger = get_logger("engine")

DIGITS = "0123456789"
MEMORY_OPERATIONS = ("mc", "m+", "m-", "mr")


@dataclass
class CalculatorState:
    """Mutable state of one calculator screen."""

    display_value: str = "0"
    formula: Formula = field(default_factory=Formula)
    formula_history_line: str = ""
    first_operand: float | None = None
    second_operand: float | None = None
    pending_operator: str | None = None
    is_starting_new_input: bool = True
    last_result: float | None = None
    angle_mode: AngleMode = AngleMode.RADIANS
    memory_register: float = 0.0
    mode: CalculatorMode = CalculatorMode.BASIC
    # Operator and right operand reapplied by a repeated "="
    repeat_operator: str | None = None
    repeat_operand: float | None = None

    @property
    def input_formula(self) -> str:
        return self.formula.render()

    def reset(self) -> None:
        """Return to defaults; memory, angle mode and keypad mode persist."""
        self.display_value = "0"
        self.formula.clear()
        self.formula_history_line = ""
        self.first_operand = None
        self.second_operand = None
        self.pending_operator = None
        self.is_starting_new_input = True
        self.last_result = None
        self.repeat_operator = None
        self.repeat_operand = None


class ExpressionEngine:
    """Turns key presses into display text, formula text and history entries."""

    def __init__(
        self,
        formatter: NumberFormatter | None = None,
        history_store: HistoryStore | None = None,
        evaluator: BracketExpressionEvaluator | None = None,
        angle_mode: AngleMode | str | None = None,
        unparsable_policy: str | None = None,
        enforce_mode: bool = False,
    ):
        self.formatter = formatter if formatter is not None else NumberFormatter()
        self.history_store = (
            history_store if history_store is not None else InMemoryHistoryStore()
        )
        self.evaluator = (
            evaluator
            if evaluator is not None
            else BracketExpressionEvaluator(self.formatter.decimal_separator)
        )
        self.unparsable_policy = unparsable_policy or config.UNPARSABLE_OPERAND_POLICY
        if self.unparsable_policy not in ("ignore", "zero"):
            raise ValueError(
                f"Unknown unparsable operand policy: {self.unparsable_policy!r}"
            )
        self.enforce_mode = enforce_mode
        self.state = CalculatorState(
            angle_mode=AngleMode(angle_mode or config.DEFAULT_ANGLE_MODE)
        )

    @property
    def display_value(self) -> str:
        return self.state.display_value

    @property
    def input_formula(self) -> str:
        return self.state.input_formula

    @property
    def formula_history_line(self) -> str:
        return self.state.formula_history_line

    @property
    def last_result(self) -> float | None:
        return self.state.last_result

    @property
    def memory_register(self) -> float:
        return self.state.memory_register

    @property
    def angle_mode(self) -> AngleMode:
        return self.state.angle_mode

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of everything a screen would show."""
        s = self.state
        return {
            "display": s.display_value,
            "formula": s.input_formula,
            "formula_segments": s.formula.segments(),
            "formula_history_line": s.formula_history_line,
            "pending_operator": s.pending_operator,
            "last_result": s.last_result,
            "memory": s.memory_register,
            "angle_mode": s.angle_mode.value,
            "mode": s.mode.value,
            "is_starting_new_input": s.is_starting_new_input,
        }

    def _format(self, value: float) -> str:
        return self.formatter.format(value)

    @property
    def _separator(self) -> str:
        return self.formatter.decimal_separator

    def _in_expression(self) -> bool:
        """True while the display holds bracket text rather than one number."""
        return has_brackets(self.state.display_value)

    def _read_operand(self, text: str) -> float | None:
        value = self.formatter.parse(text)
        if value is not None:
            return value
        if self.unparsable_policy == "zero":
            logger.debug("Reading unparsable operand %r as 0", text)
            return 0.0
        logger.debug("Ignoring input: operand %r is not a number", text)
        return None

    def _current_value(self) -> float | None:
        """Value on the display, at full precision when it shows the last result."""
        s = self.state
        if s.last_result is not None and s.display_value == self._format(s.last_result):
            return s.last_result
        return self._read_operand(s.display_value)

    def _resolve_display(self) -> EvalResult:
        """Collapse the display to one number, evaluating closed bracket text."""
        if self._in_expression():
            return self.evaluator.evaluate(repair_brackets(self.state.display_value))
        value = self._current_value()
        if value is None:
            return EvalResult.failure(ErrorKind.UNPARSABLE_OPERAND, self.state.display_value)
        return EvalResult.success(value)

    def _sync_formula_operand(self) -> None:
        s = self.state
        if s.pending_operator is not None:
            s.formula.set_operand(s.display_value)
        else:
            s.formula.reset(s.display_value)

    def _append_number_text(self, text: str) -> None:
        """Append a whole number to open bracket text, implying × after an operand."""
        s = self.state
        last = s.display_value.rstrip()[-1:]
        if last.isdigit() or last == ")" or last == self._separator:
            s.display_value = s.display_value.rstrip() + " × "
            s.formula.append_operator("×")
        s.display_value += text
        s.formula.replace_trailing_number(
            trailing_number(s.display_value, self._separator)
        )
        s.is_starting_new_input = False

    def _show_error(self, kind: ErrorKind, expression: str | None = None) -> None:
        s = self.state
        logger.debug("Showing error sentinel for %s", kind.value)
        s.display_value = self._format(math.nan)
        s.last_result = math.nan
        s.first_operand = None
        s.second_operand = None
        s.pending_operator = None
        s.repeat_operator = None
        s.repeat_operand = None
        s.formula.clear()
        if expression is not None:
            s.formula_history_line = expression
        s.is_starting_new_input = True

    def _record(self, expression: str, result: str) -> None:
        logger.info("History: %s = %s", expression, result)
        self.history_store.append(expression, result)

    def _commit_result(self, expression: str, result: float) -> None:
        s = self.state
        text = self._format(result)
        s.display_value = text
        s.last_result = result
        s.first_operand = result
        s.second_operand = None
        s.pending_operator = None
        s.formula.clear()
        s.formula_history_line = expression
        s.is_starting_new_input = True
        self._record(expression, text)

    def _mode_blocked(self, action: str) -> bool:
        if self.enforce_mode and self.state.mode is CalculatorMode.BASIC:
            logger.debug("%s ignored in basic mode", action)
            return True
        return False

    def input_digit_or_decimal(self, token: str) -> None:
        """Type a digit or the decimal point."""
        s = self.state
        is_decimal = token in (".", self._separator)
        if not is_decimal and (len(token) != 1 or token not in DIGITS):
            raise ValueError(f"Not a digit or decimal point: {token!r}")
        text = self._separator if is_decimal else token

        if self._in_expression():
            if s.display_value.endswith(")"):
                # Juxtaposition after a group implies multiplication
                s.display_value += " × "
                s.formula.append_operator("×")
            current = trailing_number(s.display_value, self._separator)
            if is_decimal:
                if self._separator in current:
                    return
                if current in ("", "-"):
                    text = "0" + self._separator
            s.display_value += text
            s.formula.replace_trailing_number(
                trailing_number(s.display_value, self._separator)
            )
            s.is_starting_new_input = False
            return

        if s.is_starting_new_input:
            s.display_value = text
            s.is_starting_new_input = False
            s.second_operand = None
        elif is_decimal and self._separator in s.display_value:
            return
        elif self.formatter.is_sentinel(s.display_value):
            s.display_value = text
        elif s.display_value in ("0", "-0") and not is_decimal:
            s.display_value = s.display_value[:-1] + text
        else:
            s.display_value += text
        self._sync_formula_operand()

    def input_constant(self, name: str) -> None:
        """Enter π or e as the current operand."""
        if self._mode_blocked(f"Constant {name}"):
            return
        s = self.state
        value = constant_value(name)
        text = self._format(value)
        if self._in_expression():
            self._append_number_text(text)
            return
        s.display_value = text
        # A complete operand: with an operator pending it is ready for "="
        s.second_operand = value if s.pending_operator is not None else None
        s.is_starting_new_input = True
        self._sync_formula_operand()

    def recall_last_result(self) -> None:
        """Ans: bring back the last result and keep editing it."""
        s = self.state
        if s.last_result is None or not math.isfinite(s.last_result):
            return
        text = self._format(s.last_result)
        if self._in_expression():
            self._append_number_text(text)
        else:
            s.display_value = text
            s.second_operand = None
            self._sync_formula_operand()
        s.is_starting_new_input = False

    @staticmethod
    def perform_binary_op(operator: str | None, a: float, b: float | None) -> float:
        return perform_binary_op(operator, a, b)

    def input_operator(self, symbol: str) -> None:
        """Choose + - × ÷, folding a pending operation first."""
        symbol = normalize_operator(symbol)
        s = self.state

        if bracket_depth(s.display_value) > 0:
            self._append_operator_in_group(symbol)
            return

        if (
            s.pending_operator is not None
            and s.is_starting_new_input
            and s.second_operand is None
        ):
            # Operator pressed again before a second operand: replace it
            s.pending_operator = symbol
            if s.formula.has_brackets():
                s.formula.append_operator(symbol)
            else:
                s.formula.reset(self._format(s.first_operand), symbol)
            return

        keep_group = False
        if s.pending_operator is not None:
            if s.second_operand is not None:
                right = EvalResult.success(s.second_operand)
            else:
                right = self._resolve_display()
            if not right.ok:
                if right.error is ErrorKind.DIVISION_BY_ZERO:
                    self._show_error(right.error)
                return
            left = s.first_operand
            s.formula_history_line = (
                f"{self._format(left)} {s.pending_operator} {self._format(right.value)}"
            )
            result = perform_binary_op(s.pending_operator, left, right.value)
            s.first_operand = result
            s.last_result = result
            s.second_operand = None
            s.display_value = self._format(result)
        else:
            operand = self._resolve_display()
            if not operand.ok:
                if operand.error is ErrorKind.DIVISION_BY_ZERO:
                    self._show_error(operand.error)
                return
            if self._in_expression():
                s.last_result = operand.value
                s.display_value = self._format(operand.value)
            s.first_operand = operand.value
            # A finished bracket group stays visible in the formula
            keep_group = s.formula.has_brackets() and s.formula.depth == 0

        s.pending_operator = symbol
        s.repeat_operator = None
        s.repeat_operand = None
        if keep_group:
            s.formula.append_operator(symbol)
        else:
            s.formula.reset(self._format(s.first_operand), symbol)
        s.is_starting_new_input = True
        logger.debug("Operator %s pending with first operand %r", symbol, s.first_operand)

    def _append_operator_in_group(self, symbol: str) -> None:
        """Inside an open group operators are kept as text for later collapse."""
        s = self.state
        stripped = s.display_value.rstrip()
        last = stripped[-1:]
        if last == "(":
            if symbol == "-":
                # Sign of the number about to be typed
                s.display_value = stripped + "-"
            return
        if last == "-" and not s.display_value.endswith(" "):
            # A glued sign cannot be followed by an operator
            return
        if last in config.BINARY_OPERATORS:
            s.display_value = stripped[:-1] + symbol + " "
        else:
            s.display_value = f"{stripped} {symbol} "
        s.formula.append_operator(symbol)
        s.is_starting_new_input = True

    def input_equal(self) -> None:
        """Evaluate: bracket text through the evaluator, else the pending operation."""
        s = self.state
        source = None
        if s.formula.has_brackets():
            source = s.formula.render()
        elif self._in_expression():
            source = s.display_value
        if source is not None:
            expression = repair_brackets(source)
            if "(" in expression and self._equal_bracketed(expression):
                return

        if s.pending_operator is not None:
            operator = s.pending_operator
            if s.second_operand is not None:
                right = EvalResult.success(s.second_operand)
            else:
                right = self._resolve_display()
        elif s.repeat_operator is not None:
            operator = s.repeat_operator
            left = self._resolve_display()
            if not left.ok:
                return
            s.first_operand = left.value
            right = EvalResult.success(s.repeat_operand)
        else:
            return

        if not right.ok:
            if right.error is ErrorKind.DIVISION_BY_ZERO:
                self._show_error(right.error)
            return
        left_value = s.first_operand
        result = perform_binary_op(operator, left_value, right.value)
        expression = (
            f"{self._format(left_value)} {operator} {self._format(right.value)}"
        )
        self._commit_result(expression, result)
        s.repeat_operator = operator
        s.repeat_operand = right.value

    def _equal_bracketed(self, expression: str) -> bool:
        """Evaluate bracket text; False when it cannot be collapsed."""
        s = self.state
        outcome = self.evaluator.evaluate(expression)
        if not outcome.ok:
            if outcome.error is ErrorKind.DIVISION_BY_ZERO:
                self._record(expression, self._format(math.nan))
                self._show_error(outcome.error, expression)
                return True
            logger.debug("Cannot collapse %r, using the pending operation", expression)
            return False
        self._commit_result(expression, outcome.value)
        s.first_operand = None
        s.repeat_operator = None
        s.repeat_operand = None
        return True

    def handle_clear(self) -> None:
        self.state.reset()
        logger.debug("Cleared")

    def handle_toggle_sign(self) -> None:
        """Negate the current operand."""
        if self._in_expression():
            self._rewrite_trailing_number(
                lambda text: text[1:] if text.startswith("-") else f"-{text}"
            )
            return
        value = self._current_value()
        if value is None:
            return
        self._replace_operand(-value)

    def handle_percentage(self) -> None:
        """Divide the current operand by 100."""
        if self._in_expression():
            self._rewrite_trailing_number(
                lambda text: self._format(self.formatter.parse(text) / 100)
            )
            return
        value = self._current_value()
        if value is None:
            return
        self._replace_operand(value / 100)

    def _rewrite_trailing_number(self, rewrite) -> None:
        s = self.state
        current = trailing_number(s.display_value, self._separator)
        if not current or current == "-":
            return
        replacement = rewrite(current)
        s.display_value = s.display_value[: len(s.display_value) - len(current)] + replacement
        s.formula.replace_trailing_number(replacement)

    def _replace_operand(self, value: float) -> None:
        s = self.state
        s.display_value = self._format(value)
        if s.second_operand is not None:
            s.second_operand = value
        self._sync_formula_operand()

    def handle_scientific_function(self, name: str) -> None:
        """Apply a unary scientific function to the displayed value."""
        if not is_supported(name):
            logger.warning("Unknown scientific function %r", name)
            return
        if self._mode_blocked(f"Function {name}"):
            return
        s = self.state
        value = self._current_value()
        if value is None:
            return
        try:
            result = apply_function(name, value, s.angle_mode)
        except ScientificFunctionError as e:
            logger.debug("%s(%r) failed: %s", name, value, e.message)
            result = math.nan

        s.formula_history_line = describe(name, self._format(value))
        s.last_result = result
        s.display_value = self._format(result)
        if s.pending_operator is not None:
            s.second_operand = result
            s.formula.set_operand(s.display_value)
        else:
            s.first_operand = result
            s.formula.reset(s.display_value)
        s.is_starting_new_input = True

    def handle_memory_operation(self, operation: str) -> None:
        """mc, m+, m-, mr."""
        if self._mode_blocked(f"Memory {operation}"):
            return
        s = self.state
        operation = operation.lower()
        if operation == "mc":
            s.memory_register = 0.0
        elif operation in ("m+", "m-"):
            value = self._current_value()
            if value is None or math.isnan(value):
                return
            if operation == "m+":
                s.memory_register += value
            else:
                s.memory_register -= value
            # The next digit starts a fresh operand
            s.is_starting_new_input = True
            if s.pending_operator is not None:
                s.second_operand = value
        elif operation == "mr":
            s.display_value = self._format(s.memory_register)
            s.second_operand = (
                s.memory_register if s.pending_operator is not None else None
            )
            s.is_starting_new_input = True
            self._sync_formula_operand()
        else:
            logger.warning("Unknown memory operation %r", operation)

    def handle_parenthesis(self) -> None:
        """Single "()" key: close the innermost group after an operand, else open one."""
        display = self.state.display_value.rstrip()
        last = display[-1:]
        if bracket_depth(display) > 0 and (
            last.isdigit() or last == ")" or last == self._separator
        ):
            self.close_parenthesis()
        else:
            self.open_parenthesis()

    def open_parenthesis(self) -> None:
        if self._mode_blocked("Parenthesis"):
            return
        s = self.state
        display = s.display_value
        last = display.rstrip()[-1:]
        operand_last = last.isdigit() or last == ")" or last == self._separator

        if bracket_depth(display) > 0 or (
            self._in_expression() and not s.is_starting_new_input
        ):
            if operand_last:
                s.display_value = display.rstrip() + " × ("
                s.formula.append_operator("×")
            elif last == "-" and not display.endswith(" "):
                return
            else:
                s.display_value = display + "("
            s.formula.open_group()
            s.is_starting_new_input = False
            return

        mid_input = (
            not s.is_starting_new_input
            and display != "0"
            and not self.formatter.is_sentinel(display)
        )
        if mid_input and operand_last:
            s.display_value = display + " × ("
            s.formula.append_operator("×")
            s.formula.open_group()
            s.is_starting_new_input = False
            return

        if s.pending_operator is not None:
            s.second_operand = None
            s.formula.drop_trailing_operand()
        else:
            s.formula.clear()
        s.formula.open_group()
        s.display_value = "("
        s.is_starting_new_input = False

    def close_parenthesis(self) -> None:
        if self._mode_blocked("Parenthesis"):
            return
        s = self.state
        display = s.display_value.rstrip()
        if bracket_depth(display) == 0 or display.endswith("("):
            return
        if display[-1] in config.BINARY_OPERATORS:
            display = display[:-1].rstrip()
            s.formula.drop_trailing_operator()
            if display.endswith("("):
                s.display_value = display
                return
        s.display_value = display + ")"
        s.formula.close_group()
        if is_single_group(s.display_value):
            self._collapse_group()
        else:
            s.is_starting_new_input = False

    def _collapse_group(self) -> None:
        s = self.state
        outcome = self.evaluator.evaluate(s.display_value)
        if not outcome.ok:
            if outcome.error is ErrorKind.DIVISION_BY_ZERO:
                self._show_error(outcome.error)
            else:
                s.is_starting_new_input = False
            return
        if s.pending_operator is not None:
            s.second_operand = outcome.value
        else:
            s.first_operand = outcome.value
        s.last_result = outcome.value
        s.display_value = self._format(outcome.value)
        s.is_starting_new_input = True
        logger.debug("Collapsed group to %r", outcome.value)

    def toggle_angle_mode(self) -> None:
        if self._mode_blocked("Angle toggle"):
            return
        self.state.angle_mode = self.state.angle_mode.toggled()

    def set_angle_mode(self, mode: AngleMode | str) -> None:
        self.state.angle_mode = AngleMode(mode)

    def switch_mode(self, mode: CalculatorMode | str) -> None:
        self.state.mode = CalculatorMode(mode)

    def load_history(self) -> list[CalculationHistoryEntry]:
        return self.history_store.load_all()

    def clear_history(self) -> None:
        self.history_store.clear()
