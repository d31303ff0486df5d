"""Type definitions, enums and result dataclasses for consistent API responses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class AngleMode(str, Enum):
    """Unit used by the trigonometric functions."""

    RADIANS = "rad"
    DEGREES = "deg"

    def toggled(self) -> AngleMode:
        return AngleMode.DEGREES if self is AngleMode.RADIANS else AngleMode.RADIANS


class CalculatorMode(str, Enum):
    """Keypad layout; scientific mode unlocks functions, memory and brackets."""

    BASIC = "basic"
    SCIENTIFIC = "scientific"


class ErrorKind(str, Enum):
    """Failure taxonomy of the calculator core."""

    DIVISION_BY_ZERO = "DIVISION_BY_ZERO"
    MALFORMED_EXPRESSION = "MALFORMED_EXPRESSION"
    INVALID_FACTORIAL_ARGUMENT = "INVALID_FACTORIAL_ARGUMENT"
    UNPARSABLE_OPERAND = "UNPARSABLE_OPERAND"
    DOMAIN_ERROR = "DOMAIN_ERROR"


class TokenKind(str, Enum):
    NUMBER = "number"
    OPERATOR = "operator"
    OPEN = "open"
    CLOSE = "close"


@dataclass(frozen=True)
class Token:
    """A single lexical element of an arithmetic expression."""

    kind: TokenKind
    text: str
    value: float | None = None


@dataclass
class EvalResult:
    """Result of collapsing an expression to a number."""

    ok: bool
    value: float | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: float, message: str | None = None) -> EvalResult:
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str | None = None) -> EvalResult:
        return cls(ok=False, error=error, message=message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        if self.value is not None:
            result_dict["value"] = self.value
        if self.error is not None:
            result_dict["error"] = self.error.value
        if self.message is not None:
            result_dict["message"] = self.message
        return result_dict

    def __repr__(self) -> str:
        """Return string representation of the result."""
        if not self.ok:
            return f"EvalResult(ok=False, error={self.error.value if self.error else None!r})"
        parts = [f"ok={self.ok}", f"value={self.value!r}"]
        if self.message is not None:
            parts.append(f"message={self.message!r}")
        return f"EvalResult({', '.join(parts)})"


@dataclass(frozen=True)
class CalculationHistoryEntry:
    """One evaluated expression; immutable once created."""

    expression: str
    result: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "expression": self.expression,
            "result": self.result,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalculationHistoryEntry:
        """Build an entry from its JSON form.

        Raises:
            KeyError: a required field is missing.
            ValueError: the timestamp is not ISO-8601.
        """
        return cls(
            expression=str(data["expression"]),
            result=str(data["result"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            id=str(data.get("id") or uuid.uuid4()),
        )


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ParseError(Exception):
    """Raised when tokenizing or reducing an expression fails."""

    def __init__(self, message: str, code: str = "PARSE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
