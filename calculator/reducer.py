"""
The calculator state machine.

reduce() maps (state, command) to the next state plus, when an "=" completes
a calculation, the HistoryEvent to commit. It is pure: states are frozen and
every transition builds a new one.

Operations apply strictly left to right. The conceptual modes are derived from
the fields rather than stored:

- entering:          is_new_number is False, digits append to current_number
- operator pending:  current_number == "" with an operation set
- result shown:      is_new_number is True after "="
- error:             current_number holds the division-by-zero or overflow message
"""
from dataclasses import replace
from decimal import Decimal
from typing import Optional, Tuple

from .commands import (
    Backspace,
    Clear,
    Command,
    Digit,
    Dot,
    Equals,
    Operator,
    OperatorCommand,
)
from .evaluator import DIVISION_BY_ZERO, OVERFLOW, compute, format_number, parse_operand
from .state import (
    ERROR_STATE,
    INITIAL_STATE,
    OVERFLOW_STATE,
    CalculatorState,
    HistoryEvent,
    render_expression,
    render_pending,
)

Transition = Tuple[CalculatorState, Optional[HistoryEvent]]


def reduce(state: CalculatorState, command: Command) -> Transition:
    """
    Compute the next state for a single command.

    Args:
        state: Current calculator state
        command: Classified input command

    Returns:
        (next_state, event) where event is set only for a completed "="
    """
    if isinstance(command, Clear):
        return INITIAL_STATE, None
    if isinstance(command, Digit):
        return _enter_digit(state, command.digit), None
    if isinstance(command, Dot):
        return _enter_dot(state), None
    if isinstance(command, Backspace):
        return _backspace(state), None
    if isinstance(command, OperatorCommand):
        return _apply(state, command.operator)
    if isinstance(command, Equals):
        return _apply(state, None)
    return state, None


def _enter_digit(state: CalculatorState, digit: str) -> CalculatorState:
    if state.is_new_number or state.current_number == "0":
        current = digit
    else:
        current = state.current_number + digit
    return replace(
        state,
        current_number=current,
        is_new_number=False,
        history_expression=render_pending(state.previous_number, state.operation),
    )


def _enter_dot(state: CalculatorState) -> CalculatorState:
    if state.is_new_number:
        current = "0."
    elif "." in state.current_number:
        return state
    else:
        current = state.current_number + "."
    return replace(
        state,
        current_number=current,
        is_new_number=False,
        history_expression=render_pending(state.previous_number, state.operation),
    )


def _backspace(state: CalculatorState) -> CalculatorState:
    # Results and the operator-pending display are not editable
    if state.is_new_number:
        return state
    current = state.current_number[:-1]
    if not current:
        return replace(state, current_number="0", is_new_number=True)
    return replace(state, current_number=current)


def _apply(state: CalculatorState, op: Optional[Operator]) -> Transition:
    """Handle an operator (op set) or "=" (op is None)."""
    is_equals = op is None
    has_pending = bool(state.previous_number) and state.operation is not None

    # Anything non-numeric on the display (the error message) resets
    if state.current_number and parse_operand(state.current_number) is None:
        return INITIAL_STATE, None

    # Repeated "=": replay the last right operand against the last result
    if is_equals and state.is_new_number and has_pending and state.last_operand:
        return _evaluate(state.previous_number, state.operation, state.last_operand)

    if state.current_number == "":
        if not has_pending:
            return state, None
        if not is_equals:
            return replace(
                state,
                operation=op,
                history_expression=render_pending(state.previous_number, op),
            ), None
        operand = state.last_operand or state.previous_number
        return _evaluate(state.previous_number, state.operation, operand)

    current = format_number(parse_operand(state.current_number))

    if state.is_new_number and not is_equals and has_pending:
        # An operator right after a result starts a new chain from that result
        return CalculatorState(
            current_number="",
            previous_number=state.current_number,
            operation=op,
            last_operand="",
            is_new_number=True,
            history_expression=render_pending(state.current_number, op),
        ), None

    if has_pending:
        if is_equals:
            return _evaluate(state.previous_number, state.operation, current)
        outcome = compute(Decimal(state.previous_number), state.operation, Decimal(current))
        if outcome is DIVISION_BY_ZERO or outcome is OVERFLOW:
            return _failure_state(outcome), None
        result = format_number(outcome)
        return CalculatorState(
            current_number="",
            previous_number=result,
            operation=op,
            last_operand=current,
            is_new_number=True,
            history_expression=render_pending(result, op),
        ), None

    if is_equals:
        return replace(state, is_new_number=True), None

    return CalculatorState(
        current_number="",
        previous_number=current,
        operation=op,
        last_operand=current,
        is_new_number=True,
        history_expression=render_pending(current, op),
    ), None


def _evaluate(left: str, op: Operator, right: str) -> Transition:
    """Evaluate "left op right" for "=" and emit the history event."""
    outcome = compute(Decimal(left), op, Decimal(right))
    if outcome is DIVISION_BY_ZERO or outcome is OVERFLOW:
        return _failure_state(outcome), None

    result = format_number(outcome)
    expression = render_expression(left, op, right)
    next_state = CalculatorState(
        current_number=result,
        previous_number=result,
        operation=op,
        last_operand=right,
        is_new_number=True,
        history_expression=f"{expression} =",
    )
    return next_state, HistoryEvent(
        expression=expression,
        result=result,
        operation=op,
        operand=right,
    )


def _failure_state(outcome) -> CalculatorState:
    if outcome is OVERFLOW:
        return OVERFLOW_STATE
    return ERROR_STATE
