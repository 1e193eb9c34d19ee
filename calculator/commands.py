"""
Input classification.
Normalizes raw key tokens and button glyphs into canonical commands.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Operator(Enum):
    """The four binary operations, keyed by their canonical character."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def glyph(self) -> str:
        """Character shown on the display."""
        return _GLYPHS.get(self, self.value)

    @classmethod
    def from_token(cls, token: str) -> Optional["Operator"]:
        """Map a canonical character or display glyph to an operator."""
        token = _GLYPH_ALIASES.get(token, token)
        try:
            return cls(token)
        except ValueError:
            return None


_GLYPHS = {
    Operator.MUL: "×",
    Operator.DIV: "÷",
}

_GLYPH_ALIASES = {glyph: op.value for op, glyph in _GLYPHS.items()}


@dataclass(frozen=True)
class Digit:
    digit: str


@dataclass(frozen=True)
class Dot:
    pass


@dataclass(frozen=True)
class OperatorCommand:
    operator: Operator


@dataclass(frozen=True)
class Equals:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Backspace:
    pass


Command = Union[Digit, Dot, OperatorCommand, Equals, Clear, Backspace]

EQUALS_TOKENS = ["=", "Enter"]
CLEAR_TOKENS = ["Escape", "c", "C"]
BACKSPACE_TOKENS = ["Backspace"]


def classify(token: str) -> Optional[Command]:
    """
    Classify a raw token into a command.

    Args:
        token: Key name or button value, e.g. "7", "×", "Enter"

    Returns:
        The matching command, or None if the token is not recognized
    """
    if len(token) == 1 and token in "0123456789":
        return Digit(token)
    if token == ".":
        return Dot()
    if token in EQUALS_TOKENS:
        return Equals()
    if token in CLEAR_TOKENS:
        return Clear()
    if token in BACKSPACE_TOKENS:
        return Backspace()

    operator = Operator.from_token(token)
    if operator is not None:
        return OperatorCommand(operator)
    return None
