"""Public API for Keycalc - returns structured objects without side effects."""

from __future__ import annotations

from .engine import ExpressionEngine
from .evaluator import BracketExpressionEvaluator
from .formatter import NumberFormatter
from .history import HistoryStore
from .keys import parse_key_sequence, run_events
from .logging_config import get_logger
from .parser import is_balanced, tokenize
from .types import AngleMode, EvalResult, ParseError, ValidationError

logger = get_logger("api")


def evaluate(expression: str) -> EvalResult:
    """Evaluate a bracketed arithmetic expression.

    Args:
        expression: Expression string (e.g., "(2+3)×4", "2*3/4")

    Returns:
        EvalResult with the value and its display form as message

    Example:
        >>> from keycalc_pkg.api import evaluate
        >>> result = evaluate("((1+2)×(3+4))")
        >>> print(result.value)
        21.0
        >>> evaluate("1÷0").error.value
        'DIVISION_BY_ZERO'
    """
    formatter = NumberFormatter()
    result = BracketExpressionEvaluator(formatter.decimal_separator).evaluate(expression)
    if result.ok:
        result.message = formatter.format(result.value)
    return result


def format_number(number: float) -> str:
    """Format a number the way the calculator display shows it.

    Example:
        >>> from keycalc_pkg.api import format_number
        >>> format_number(0.1 + 0.2)
        '0.3'
        >>> format_number(1e-8)
        '1e-8'
    """
    return NumberFormatter().format(number)


def create_engine(
    history_store: HistoryStore | None = None,
    angle_mode: AngleMode | str | None = None,
) -> ExpressionEngine:
    """Create an engine with default formatter and evaluator."""
    return ExpressionEngine(history_store=history_store, angle_mode=angle_mode)


def run_keys(sequence: str, engine: ExpressionEngine | None = None) -> ExpressionEngine:
    """Feed a key sequence such as "7 + 8 =" to an engine.

    Args:
        sequence: Whitespace-separated button labels or named events
        engine: Engine to drive (a fresh one when omitted)

    Returns:
        The engine after the last key

    Raises:
        ValidationError: the sequence contains an unknown key

    Example:
        >>> from keycalc_pkg.api import run_keys
        >>> run_keys("7 + 8 =").display_value
        '15'
    """
    events = parse_key_sequence(sequence)
    return run_events(engine if engine is not None else create_engine(), events)


def validate_expression(expression: str) -> tuple[bool, str | None]:
    """Validate an expression without evaluating it.

    Args:
        expression: Expression string to validate

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> from keycalc_pkg.api import validate_expression
        >>> validate_expression("(2 + 3) × 4")
        (True, None)
        >>> validate_expression("2 $ 3")
        (False, "Unexpected character '$' at position 1")
        >>> validate_expression("(3 + 4")
        (False, 'Unbalanced parenthesis at position 0')
    """
    try:
        tokenize(expression)
        balanced, position = is_balanced(expression)
        if not balanced:
            return False, f"Unbalanced parenthesis at position {position}"
        return True, None
    except (ParseError, ValidationError) as e:
        return False, str(e)
    except TypeError as e:
        logger.warning("Unexpected validation error: %s", e, exc_info=True)
        return False, f"Validation error: {e}"
