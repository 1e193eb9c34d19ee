"""
Calculator facade: threads state through the reducer and feeds the ledger.
"""
import logging
from typing import Iterable, Optional

from .commands import Clear, Command, classify
from .history import HistoryEntry, HistoryLedger
from .reducer import reduce
from .state import INITIAL_STATE, CalculatorState

logger = logging.getLogger(__name__)


class Calculator:
    """One calculator: its current state and its history ledger."""

    def __init__(self, ledger: Optional[HistoryLedger] = None):
        self.state: CalculatorState = INITIAL_STATE
        self.ledger = ledger if ledger is not None else HistoryLedger()

    @property
    def display(self) -> str:
        return self.state.current_number

    def dispatch(self, command: Command) -> Optional[HistoryEntry]:
        """
        Apply one command and commit any completed calculation.

        Returns:
            The history entry created by this command, if any
        """
        self.state, event = reduce(self.state, command)
        if event is None:
            return None
        return self.ledger.commit(event)

    def press(self, token: str) -> bool:
        """
        Classify and apply a raw key token.

        Returns:
            False if the token was not recognized and therefore ignored
        """
        command = classify(token)
        if command is None:
            logger.debug(f"Ignoring unrecognized token {token!r}")
            return False
        self.dispatch(command)
        return True

    def press_many(self, tokens: Iterable[str]) -> int:
        """Apply tokens in order. Returns how many were recognized."""
        return sum(1 for token in tokens if self.press(token))

    def recall(self, entry_id: str) -> CalculatorState:
        self.state = self.ledger.recall(entry_id)
        return self.state

    def reset(self) -> None:
        self.dispatch(Clear())
