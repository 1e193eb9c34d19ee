"""
Decimal arithmetic for the four calculator operations.
"""
import decimal
from decimal import Decimal, InvalidOperation, Overflow
from typing import Optional, Union

from .commands import Operator
from .config import DECIMAL_PRECISION


class DivisionByZero:
    """Outcome of dividing by zero. Returned, never raised."""

    def __repr__(self) -> str:
        return "DIVISION_BY_ZERO"


class ArithmeticOverflow:
    """Outcome of a result whose exponent exceeds the decimal range."""

    def __repr__(self) -> str:
        return "OVERFLOW"


DIVISION_BY_ZERO = DivisionByZero()
OVERFLOW = ArithmeticOverflow()

Outcome = Union[Decimal, DivisionByZero, ArithmeticOverflow]


def parse_operand(text: str) -> Optional[Decimal]:
    """
    Parse display text into a Decimal.

    A trailing decimal point ("12.") is accepted. Returns None for empty,
    non-numeric or non-finite text.
    """
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def _exact_precision(a: Decimal, op: Operator, b: Decimal) -> int:
    """Digits needed to hold a + b, a - b or a * b without rounding."""
    a_digits = len(a.as_tuple().digits)
    b_digits = len(b.as_tuple().digits)
    if op is Operator.MUL:
        digits = a_digits + b_digits
    else:
        # Span from the highest leading digit to the lowest exponent, plus a carry
        digits = max(a.adjusted(), b.adjusted()) - min(a.as_tuple().exponent, b.as_tuple().exponent) + 2
    return min(max(digits, 1), decimal.MAX_PREC)


def compute(a: Decimal, op: Operator, b: Decimal, precision: int = DECIMAL_PRECISION) -> Outcome:
    """
    Apply a binary operation with decimal semantics.

    Addition, subtraction and multiplication are exact. Division is rounded
    to `precision` significant digits.

    Args:
        a: Left operand
        op: Operation to apply
        b: Right operand
        precision: Significant digits kept in a quotient

    Returns:
        The result, DIVISION_BY_ZERO when dividing by zero, or OVERFLOW when
        the result is out of the decimal exponent range
    """
    if op is Operator.DIV and b.is_zero():
        return DIVISION_BY_ZERO

    with decimal.localcontext() as ctx:
        if op is Operator.DIV:
            ctx.prec = precision
        else:
            ctx.prec = _exact_precision(a, op, b)
        try:
            if op is Operator.ADD:
                return a + b
            if op is Operator.SUB:
                return a - b
            if op is Operator.MUL:
                return a * b
            return a / b
        except Overflow:
            return OVERFLOW


def format_number(value: Decimal) -> str:
    """Render a Decimal as plain display text ("0.3", "10", "-2.5")."""
    if value.is_zero():
        return "0"
    with decimal.localcontext() as ctx:
        # normalize() rounds to the context precision
        ctx.prec = max(len(value.as_tuple().digits), 1)
        return format(value.normalize(), "f")
