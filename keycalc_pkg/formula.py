"""Structured model of the formula line shown above the display.

The formula is kept as an ordered list of tokens (number, operator, open
bracket, close bracket) and rendered to text on demand, so replacing the
operand being typed never needs substring surgery.
"""

from __future__ import annotations

from .types import Token, TokenKind


class Formula:
    """Editable token list behind the live formula text."""

    def __init__(self, tokens: list[Token] | None = None):
        self._tokens: list[Token] = list(tokens or [])

    @property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __bool__(self) -> bool:
        return bool(self._tokens)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"Formula({self.render()!r})"

    @property
    def last(self) -> Token | None:
        return self._tokens[-1] if self._tokens else None

    @property
    def depth(self) -> int:
        depth = 0
        for token in self._tokens:
            if token.kind is TokenKind.OPEN:
                depth += 1
            elif token.kind is TokenKind.CLOSE and depth > 0:
                depth -= 1
        return depth

    def has_brackets(self) -> bool:
        return any(
            token.kind in (TokenKind.OPEN, TokenKind.CLOSE) for token in self._tokens
        )

    def clear(self) -> None:
        self._tokens.clear()

    def reset(self, operand: str | None = None, operator: str | None = None) -> None:
        """Replace the whole formula with "<operand> <operator>"."""
        self._tokens.clear()
        if operand is not None:
            self._tokens.append(Token(TokenKind.NUMBER, operand))
        if operator is not None:
            self._tokens.append(Token(TokenKind.OPERATOR, operator))

    def replace_trailing_number(self, text: str) -> None:
        """Overwrite the number being typed, or start one after an operator/bracket."""
        if self.last is not None and self.last.kind is TokenKind.NUMBER:
            self._tokens[-1] = Token(TokenKind.NUMBER, text)
        else:
            self._tokens.append(Token(TokenKind.NUMBER, text))

    def set_operand(self, text: str) -> None:
        """Replace the trailing operand (a number or a closed group) with a number."""
        self.drop_trailing_operand()
        self._tokens.append(Token(TokenKind.NUMBER, text))

    def drop_trailing_operand(self) -> None:
        last = self.last
        if last is None:
            return
        if last.kind is TokenKind.NUMBER:
            self._tokens.pop()
            return
        if last.kind is not TokenKind.CLOSE:
            return
        depth = 0
        for index in range(len(self._tokens) - 1, -1, -1):
            kind = self._tokens[index].kind
            if kind is TokenKind.CLOSE:
                depth += 1
            elif kind is TokenKind.OPEN:
                depth -= 1
                if depth == 0:
                    del self._tokens[index:]
                    return

    def append_operator(self, symbol: str) -> None:
        """Append a binary operator, replacing one that is already trailing."""
        if self.last is not None and self.last.kind is TokenKind.OPERATOR:
            self._tokens[-1] = Token(TokenKind.OPERATOR, symbol)
        else:
            self._tokens.append(Token(TokenKind.OPERATOR, symbol))

    def drop_trailing_operator(self) -> None:
        if self.last is not None and self.last.kind is TokenKind.OPERATOR:
            self._tokens.pop()

    def open_group(self) -> None:
        self._tokens.append(Token(TokenKind.OPEN, "("))

    def close_group(self) -> None:
        if self.depth > 0:
            self._tokens.append(Token(TokenKind.CLOSE, ")"))

    def render(self) -> str:
        """Render as display text: operators spaced, numbers and brackets glued."""
        parts = []
        for token in self._tokens:
            if token.kind is TokenKind.OPERATOR:
                parts.append(f" {token.text} ")
            else:
                parts.append(token.text)
        return "".join(parts).strip()

    def segments(self) -> list[tuple[str, int]]:
        """Split the rendered text into (text, bracket_level) runs.

        Brackets are segments of their own; an opening bracket carries the
        level outside it, text inside carries the level of its group.
        """
        segments: list[tuple[str, int]] = []
        current = ""
        depth = 0
        for char in self.render():
            if char in "()":
                if current:
                    segments.append((current, depth))
                    current = ""
                if char == "(":
                    segments.append((char, depth))
                    depth += 1
                else:
                    depth = max(0, depth - 1)
                    segments.append((char, depth))
                continue
            current += char
        if current:
            segments.append((current, depth))
        return segments
