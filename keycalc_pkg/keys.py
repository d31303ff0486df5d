"""Key-dispatch layer.

Turns button labels ("7", "+", "AC", "sin", "m+", "()") or named events
("digit:7", "op:+", "sciFn:sin", "memOp:m+", "parenToggle") into KeyEvent
values and routes them to the ExpressionEngine method for that input class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from . import config
from .engine import MEMORY_OPERATIONS, ExpressionEngine
from .logging_config import calc_context, get_logger
from .scientific import is_supported
from .types import ValidationError

logger = get_logger("keys")


@dataclass(frozen=True)
class KeyEvent:
    """One discrete input event from the keypad."""

    kind: str
    argument: str | None = None

    def __str__(self) -> str:
        return f"{self.kind}:{self.argument}" if self.argument is not None else self.kind

    @classmethod
    def parse(cls, text: str) -> KeyEvent:
        """Parse a named event such as "digit:7" or "equal".

        Raises:
            ValidationError: unknown kind or bad argument
        """
        kind, _, argument = text.partition(":")
        event = cls(kind, argument or None)
        event.validate()
        return event

    def validate(self) -> None:
        if self.kind not in _HANDLERS:
            raise ValidationError(f"Unknown key event: {self}", "UNKNOWN_KEY")
        needs_argument = self.kind in _ARGUMENT_CHECKS
        if needs_argument and not _ARGUMENT_CHECKS[self.kind](self.argument or ""):
            raise ValidationError(f"Invalid argument for {self.kind}: {self.argument!r}", "BAD_KEY_ARGUMENT")
        if not needs_argument and self.argument is not None:
            raise ValidationError(f"{self.kind} takes no argument", "BAD_KEY_ARGUMENT")


_HANDLERS: dict[str, Callable[[ExpressionEngine, str | None], None]] = {
    "digit": lambda engine, arg: engine.input_digit_or_decimal(arg),
    "op": lambda engine, arg: engine.input_operator(arg),
    "equal": lambda engine, arg: engine.input_equal(),
    "clear": lambda engine, arg: engine.handle_clear(),
    "toggleSign": lambda engine, arg: engine.handle_toggle_sign(),
    "percent": lambda engine, arg: engine.handle_percentage(),
    "sciFn": lambda engine, arg: engine.handle_scientific_function(arg),
    "memOp": lambda engine, arg: engine.handle_memory_operation(arg),
    "parenToggle": lambda engine, arg: engine.handle_parenthesis(),
    "paren": lambda engine, arg: (
        engine.open_parenthesis() if arg == "(" else engine.close_parenthesis()
    ),
    "toggleAngleMode": lambda engine, arg: engine.toggle_angle_mode(),
    "const": lambda engine, arg: engine.input_constant(arg),
    "ans": lambda engine, arg: engine.recall_last_result(),
    "mode": lambda engine, arg: engine.switch_mode(arg),
}

_ARGUMENT_CHECKS: dict[str, Callable[[str], bool]] = {
    "digit": lambda arg: len(arg) == 1 and (arg.isdigit() or arg == "."),
    "op": lambda arg: config.OPERATOR_ALIASES.get(arg, arg) in config.BINARY_OPERATORS,
    "sciFn": is_supported,
    "memOp": lambda arg: arg.lower() in MEMORY_OPERATIONS,
    "paren": lambda arg: arg in ("(", ")"),
    "const": lambda arg: arg in config.CONSTANTS,
    "mode": lambda arg: arg in ("basic", "scientific"),
}

# Labels as printed on the keypad buttons
BUTTON_LABELS: dict[str, KeyEvent] = {
    "AC": KeyEvent("clear"),
    "C": KeyEvent("clear"),
    "+/-": KeyEvent("toggleSign"),
    "±": KeyEvent("toggleSign"),
    "%": KeyEvent("percent"),
    "=": KeyEvent("equal"),
    ".": KeyEvent("digit", "."),
    "()": KeyEvent("parenToggle"),
    "(": KeyEvent("paren", "("),
    ")": KeyEvent("paren", ")"),
    "Rad": KeyEvent("toggleAngleMode"),
    "Deg": KeyEvent("toggleAngleMode"),
    "Ans": KeyEvent("ans"),
    "π": KeyEvent("const", "π"),
    "e": KeyEvent("const", "e"),
    "*": KeyEvent("op", "×"),
    "/": KeyEvent("op", "÷"),
    "−": KeyEvent("op", "-"),
}
BUTTON_LABELS.update({digit: KeyEvent("digit", digit) for digit in "0123456789"})
BUTTON_LABELS.update({op: KeyEvent("op", op) for op in config.BINARY_OPERATORS})
BUTTON_LABELS.update({op: KeyEvent("memOp", op) for op in MEMORY_OPERATIONS})
BUTTON_LABELS.update(
    {
        name: KeyEvent("sciFn", name)
        for name in (
            "sin", "cos", "tan", "ln", "log", "√", "∛",
            "1/x", "eˣ", "x²", "x³", "10ˣ", "xʸ", "x!",
        )
    }
)

_LABELS_LONGEST_FIRST = sorted(BUTTON_LABELS, key=len, reverse=True)


def _split_compact(token: str) -> list[KeyEvent]:
    """Split glued labels such as "(2+3)×4=" by longest label match."""
    events: list[KeyEvent] = []
    i = 0
    while i < len(token):
        for label in _LABELS_LONGEST_FIRST:
            if token.startswith(label, i):
                events.append(BUTTON_LABELS[label])
                i += len(label)
                break
        else:
            raise ValidationError(f"Unknown key: {token[i:]!r}", "UNKNOWN_KEY")
    return events


def parse_key(token: str) -> list[KeyEvent]:
    """Events for one whitespace-free token (a label, a named event, or glued labels)."""
    if token in BUTTON_LABELS:
        return [BUTTON_LABELS[token]]
    kind = token.partition(":")[0]
    if kind in _HANDLERS:
        return [KeyEvent.parse(token)]
    return _split_compact(token)


def parse_key_sequence(text: str) -> list[KeyEvent]:
    """Parse a whitespace-separated key sequence such as "7 + 8 =".

    Raises:
        ValidationError: a token is not a known key
    """
    events: list[KeyEvent] = []
    for token in text.split():
        events.extend(parse_key(token))
    return events


def dispatch(engine: ExpressionEngine, event: KeyEvent) -> None:
    """Route one event to the engine."""
    event.validate()
    _HANDLERS[event.kind](engine, event.argument)
    logger.debug(
        "Key %s",
        event,
        extra=calc_context(
            display=engine.display_value, pending=engine.state.pending_operator
        ),
    )


def run_events(engine: ExpressionEngine, events: Iterable[KeyEvent]) -> ExpressionEngine:
    for event in events:
        dispatch(engine, event)
    return engine
