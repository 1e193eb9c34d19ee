"""
Tests for the calculator state machine.
"""
import itertools
from dataclasses import FrozenInstanceError

import pytest

from calculator.commands import Backspace, Clear, Equals, Operator, classify
from calculator.config import DIVISION_BY_ZERO_MESSAGE, OVERFLOW_MESSAGE
from calculator.evaluator import parse_operand
from calculator.reducer import reduce
from calculator.state import ERROR_STATE, INITIAL_STATE, OVERFLOW_STATE, CalculatorState


def run(tokens, state=INITIAL_STATE):
    """Apply tokens in order; return the final state and all emitted events."""
    events = []
    for token in tokens:
        state, event = reduce(state, classify(token))
        if event is not None:
            events.append(event)
    return state, events


def displays(tokens):
    """Display text after each token."""
    state = INITIAL_STATE
    shown = []
    for token in tokens:
        state, _ = reduce(state, classify(token))
        shown.append(state.current_number)
    return shown


class TestScenarios:
    """End-to-end key sequences."""

    def test_simple_addition(self):
        state, events = run(["5", "+", "3", "="])
        assert state.current_number == "8"
        assert len(events) == 1

    def test_division_by_zero_then_recover(self):
        state, events = run(["6", "/", "0", "="])
        assert state.current_number == DIVISION_BY_ZERO_MESSAGE
        assert state == ERROR_STATE
        assert events == []

        state, _ = run(["7"], state)
        assert state.current_number == "7"

    def test_repeat_equals(self):
        assert displays(["7", "+", "3", "=", "="])[-2:] == ["10", "13"]

    def test_result_then_new_chain(self):
        shown = displays(["9", "-", "4", "=", "+", "3", "="])
        assert shown[3] == "5"
        assert shown[-1] == "8"

    def test_second_dot_ignored(self):
        assert displays(["1", ".", ".", "5"])[-1] == "1.5"

    def test_backspace_to_zero(self):
        state, _ = run(["5", "Backspace"])
        assert state.current_number == "0"
        assert state.is_new_number is True

        state, _ = run(["Backspace"], state)
        assert state.current_number == "0"

    def test_decimal_addition(self):
        state, _ = run(["0", ".", "1", "+", "0", ".", "2", "="])
        assert state.current_number == "0.3"


class TestEntry:
    """Digit, dot and backspace handling."""

    def test_leading_zero_replaced(self):
        assert displays(["0", "0", "7"])[-1] == "7"

    def test_digits_append(self):
        assert displays(["1", "2", "3"])[-1] == "123"

    def test_dot_on_new_number(self):
        assert displays(["."]) == ["0."]
        state, _ = run(["5", "+", "."])
        assert state.current_number == "0."

    def test_zero_after_dot_appends(self):
        assert displays(["0", ".", "0", "5"])[-1] == "0.05"

    def test_backspace_removes_last_char(self):
        assert displays(["1", "2", "Backspace"])[-1] == "1"

    def test_backspace_ignored_on_result(self):
        state, _ = run(["2", "*", "3", "="])
        after, event = reduce(state, Backspace())
        assert after is state
        assert event is None

    def test_backspace_ignored_while_operator_pending(self):
        state, _ = run(["2", "+"])
        after, _ = reduce(state, Backspace())
        assert after is state

    def test_dot_in_error_starts_fresh(self):
        state, _ = run(["1", "/", "0", "=", "."])
        assert state.current_number == "0."
        assert state.operation is None


class TestOperators:
    """Operator and equals transitions."""

    def test_first_operator(self):
        state, events = run(["1", "2", "+"])
        assert state == CalculatorState(
            current_number="",
            previous_number="12",
            operation=Operator.ADD,
            last_operand="12",
            is_new_number=True,
            history_expression="12 +",
        )
        assert events == []

    def test_first_operator_normalizes_trailing_dot(self):
        state, _ = run(["1", "2", ".", "×"])
        assert state.previous_number == "12"
        assert state.history_expression == "12 ×"

    def test_operator_substitution(self):
        state, events = run(["8", "+", "-", "×", "÷"])
        assert state.operation is Operator.DIV
        assert state.previous_number == "8"
        assert events == []

        state, _ = run(["2", "="], state)
        assert state.current_number == "4"

    def test_chained_operators_evaluate_left_to_right(self):
        state, events = run(["2", "+", "3", "*"])
        assert state.previous_number == "5"
        assert state.operation is Operator.MUL
        assert state.current_number == ""
        assert state.last_operand == "3"
        assert events == []

        state, _ = run(["4", "="], state)
        assert state.current_number == "20"

    def test_equals_without_operation(self):
        state, events = run(["4", "2", "="])
        assert state.current_number == "42"
        assert state.is_new_number is True
        assert state.operation is None
        assert events == []

        state, _ = run(["1"], state)
        assert state.current_number == "1"

    def test_equals_reuses_left_operand(self):
        """"5 + =" uses 5 as the right operand too."""
        state, events = run(["5", "+", "="])
        assert state.current_number == "10"
        assert events[0].expression == "5 + 5"

        state, _ = run(["="], state)
        assert state.current_number == "15"

    def test_equals_after_new_chain_uses_previous(self):
        state, _ = run(["2", "+", "3", "=", "*", "="])
        assert state.current_number == "25"
        assert state.last_operand == "5"

    def test_equals_with_nothing_pending(self):
        state, events = reduce(INITIAL_STATE, Equals())
        assert state.current_number == "0"
        assert state.is_new_number is True
        assert events is None

    def test_operator_pending_equals_without_operation_is_noop(self):
        state = CalculatorState(current_number="")
        after, event = reduce(state, Equals())
        assert after is state
        assert event is None

    def test_chained_division_by_zero(self):
        state, events = run(["8", "/", "0", "+"])
        assert state == ERROR_STATE
        assert events == []

    def test_repeat_equals_division_by_zero(self):
        state = CalculatorState(
            current_number="4",
            previous_number="4",
            operation=Operator.DIV,
            last_operand="0",
            is_new_number=True,
        )
        after, event = reduce(state, Equals())
        assert after == ERROR_STATE
        assert event is None

    @pytest.mark.parametrize("token", ["+", "=", "÷"])
    def test_operator_in_error_state_resets(self, token):
        state, events = run(["1", "/", "0", "=", token])
        assert state == INITIAL_STATE
        assert events == []

    def test_negative_results(self):
        state, _ = run(["3", "-", "8", "=", "*", "2", "="])
        assert state.current_number == "-10"


class TestRepeatEquals:
    """Repeated "=" keeps applying the last operation and operand."""

    @pytest.mark.parametrize("presses, expected", [
        (1, "4"),
        (2, "8"),
        (3, "16"),
        (5, "64"),
    ])
    def test_fold(self, presses, expected):
        state, events = run(["2", "*", "2"] + ["="] * presses)
        assert state.current_number == expected
        assert len(events) == presses

    def test_operation_and_operand_retained(self):
        state, _ = run(["1", "0", "-", "3", "=", "="])
        assert state.current_number == "4"
        assert state.previous_number == "4"
        assert state.operation is Operator.SUB
        assert state.last_operand == "3"

    def test_decimal_repeat(self):
        assert displays(["0", ".", "1", "+", "0", ".", "1", "=", "=", "="])[-1] == "0.4"


class TestHistoryEvents:
    """Events emitted on completed calculations."""

    def test_event_contents(self):
        _, events = run(["1", "2", "×", "3", "="])
        event = events[0]
        assert event.expression == "12 × 3"
        assert event.result == "36"
        assert event.operation is Operator.MUL
        assert event.operand == "3"
        assert event.dedup_key == "12 × 3|36"

    def test_history_expression_after_equals(self):
        state, _ = run(["7", "+", "3", "="])
        assert state.history_expression == "7 + 3 ="

    def test_repeat_emits_each_time(self):
        _, events = run(["7", "+", "3", "=", "="])
        assert [e.expression for e in events] == ["7 + 3", "10 + 3"]
        assert [e.result for e in events] == ["10", "13"]

    def test_no_event_for_operator_chaining(self):
        _, events = run(["1", "+", "2", "+", "3", "+"])
        assert events == []


class TestClear:
    """Clear always returns the initial state."""

    @pytest.mark.parametrize("tokens", [
        [],
        ["5"],
        ["5", "+"],
        ["5", "+", "3"],
        ["5", "+", "3", "="],
        ["6", "/", "0", "="],
        ["1", "."],
    ])
    def test_clear_from_any_state(self, tokens):
        state, _ = run(tokens)
        cleared, event = reduce(state, Clear())
        assert cleared == INITIAL_STATE
        assert event is None

        again, _ = reduce(cleared, Clear())
        assert again == INITIAL_STATE


class TestPurity:
    """States are never mutated in place."""

    def test_input_state_unchanged(self):
        state, _ = run(["5", "+", "3"])
        snapshot = CalculatorState(**vars(state))
        reduce(state, classify("="))
        assert state == snapshot

    def test_states_are_frozen(self):
        with pytest.raises(FrozenInstanceError):
            INITIAL_STATE.current_number = "1"


class TestDigitAfterResult:
    """A digit typed over a result keeps the completed operation pending."""

    def test_equals_chains_onto_old_result(self):
        state, events = run(["5", "+", "3", "=", "2", "="])
        assert state.current_number == "10"
        assert events[-1].expression == "8 + 2"

    def test_operator_chains_onto_old_result(self):
        state, _ = run(["5", "+", "3", "=", "2", "+"])
        assert state.previous_number == "10"
        assert state.operation is Operator.ADD
        assert state.current_number == ""
        assert state.last_operand == "2"

    def test_equation_line_shows_pending_operation(self):
        state, _ = run(["5", "+", "3", "=", "2"])
        assert state.current_number == "2"
        assert state.history_expression == "8 +"


class TestExactArithmetic:
    """Addition, subtraction and multiplication keep every digit."""

    def test_long_addition(self):
        state, _ = run(list("12345678901234567") + ["+", "1", "="])
        assert state.current_number == "12345678901234568"

    def test_long_multiplication(self):
        state, _ = run(list("12345678.9") + ["*"] + list("98765432.1") + ["="])
        assert state.current_number == "1219326311126352.69"

    def test_long_operand_kept_as_left_operand(self):
        state, _ = run(list("123456789012345678901") + ["-"])
        assert state.previous_number == "123456789012345678901"


class TestOverflow:
    """Results beyond the decimal exponent range show an error instead of raising."""

    BIG = "1" + "0" * 999_999

    def _big_state(self):
        return CalculatorState(
            current_number=self.BIG,
            previous_number=self.BIG,
            operation=Operator.MUL,
            last_operand="10",
            is_new_number=True,
        )

    def test_repeat_equals_overflow(self):
        state, event = reduce(self._big_state(), Equals())
        assert state == OVERFLOW_STATE
        assert state.current_number == OVERFLOW_MESSAGE
        assert state.is_error is True
        assert event is None

    def test_chained_operator_overflow(self):
        state = CalculatorState(
            current_number="10",
            previous_number=self.BIG,
            operation=Operator.MUL,
            last_operand="10",
            is_new_number=False,
        )
        after, event = reduce(state, classify("+"))
        assert after == OVERFLOW_STATE
        assert event is None

    def test_recovery_after_overflow(self):
        state, _ = reduce(self._big_state(), Equals())
        assert run(["7"], state)[0].current_number == "7"
        assert run(["+"], state)[0] == INITIAL_STATE


KEYS = ["0", "5", ".", "+", "/", "=", "Backspace", "C"]


def _reachable_states(max_length):
    for length in range(1, max_length + 1):
        for tokens in itertools.product(KEYS, repeat=length):
            state, _ = run(tokens)
            yield tokens, state


class TestInvariants:
    """Structural invariants hold in every reachable state."""

    def test_operation_iff_previous_number(self):
        for tokens, state in _reachable_states(4):
            assert (state.operation is None) == (state.previous_number == ""), tokens

    def test_error_state_shape(self):
        seen_error = False
        for tokens, state in _reachable_states(4):
            if state.is_error:
                seen_error = True
                assert state.previous_number == "", tokens
                assert state.operation is None, tokens
        assert seen_error

    def test_display_is_numeric_outside_error(self):
        for tokens, state in _reachable_states(4):
            if state.current_number and not state.is_error:
                assert parse_operand(state.current_number) is not None, tokens

    def test_clear_from_every_reachable_state(self):
        for tokens, state in _reachable_states(3):
            assert reduce(state, Clear())[0] == INITIAL_STATE, tokens
