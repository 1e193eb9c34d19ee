"""
Calculator state and the events emitted when a calculation completes.
"""
from dataclasses import dataclass
from typing import Optional

from .commands import Operator
from .config import DIVISION_BY_ZERO_MESSAGE, OVERFLOW_MESSAGE


@dataclass(frozen=True)
class CalculatorState:
    """
    Snapshot of the calculator. Transitions build a new instance.

    current_number is the display buffer; an empty string means an operator
    was just chosen and the next operand has not been typed yet.
    """
    current_number: str = "0"
    previous_number: str = ""
    operation: Optional[Operator] = None
    last_operand: str = ""
    is_new_number: bool = True
    history_expression: str = ""

    @property
    def is_error(self) -> bool:
        return self.current_number in (DIVISION_BY_ZERO_MESSAGE, OVERFLOW_MESSAGE)


@dataclass(frozen=True)
class HistoryEvent:
    """A completed "=" evaluation, ready to be committed to the history ledger."""
    expression: str
    result: str
    operation: Operator
    operand: str

    @property
    def dedup_key(self) -> str:
        return f"{self.expression}|{self.result}"


INITIAL_STATE = CalculatorState()

ERROR_STATE = CalculatorState(current_number=DIVISION_BY_ZERO_MESSAGE)

OVERFLOW_STATE = CalculatorState(current_number=OVERFLOW_MESSAGE)


def render_expression(left: str, op: Operator, right: str) -> str:
    """Human-readable "<left> <op> <right>", using display glyphs."""
    return f"{left} {op.glyph} {right}"


def render_pending(left: str, op: Optional[Operator]) -> str:
    """Expression line while waiting for the right operand."""
    if op is None:
        return ""
    return f"{left} {op.glyph}"
