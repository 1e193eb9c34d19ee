"""
History ledger of completed calculations.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from .commands import Operator
from .state import CalculatorState, HistoryEvent

logger = logging.getLogger(__name__)


class HistoryEntryNotFound(Exception):
    """Raised when recalling an entry id the ledger does not hold."""
    pass


@dataclass(frozen=True)
class HistoryEntry:
    """A committed calculation."""
    expression: str
    result: str
    operation: Operator
    operand: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class HistoryLedger:
    """
    Newest-first list of completed calculations.

    Commits are idempotent against immediate redelivery: an event whose
    "expression|result" key equals the last committed key is dropped.
    """

    def __init__(self):
        self._entries: List[HistoryEntry] = []
        self._last_key: Optional[str] = None

    def commit(self, event: HistoryEvent) -> Optional[HistoryEntry]:
        """
        Append an event unless it repeats the most recent commit.

        Args:
            event: Event emitted by the reducer

        Returns:
            The new entry, or None if the event was a duplicate
        """
        if event.dedup_key == self._last_key:
            logger.debug(f"Skipping duplicate history commit: {event.dedup_key}")
            return None

        entry = HistoryEntry(
            expression=event.expression,
            result=event.result,
            operation=event.operation,
            operand=event.operand,
        )
        self._entries.insert(0, entry)
        self._last_key = event.dedup_key
        logger.debug(f"Committed history entry {entry.id}: {entry.expression} = {entry.result}")
        return entry

    def get(self, entry_id: str) -> HistoryEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise HistoryEntryNotFound(f"No history entry with id {entry_id}")

    def recall(self, entry_id: str) -> CalculatorState:
        """
        Rebuild calculator state from a past entry.

        The result is primed as if the calculation had just completed, so a
        following "=" repeats the entry's operation and operand.
        """
        entry = self.get(entry_id)
        return CalculatorState(
            current_number=entry.result,
            previous_number=entry.result,
            operation=entry.operation,
            last_operand=entry.operand,
            is_new_number=True,
            history_expression=f"{entry.expression} =",
        )

    def clear(self) -> None:
        self._entries = []
        self._last_key = None

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)
