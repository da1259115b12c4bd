"""
Edit History

Bounded undo/redo stack of site structure states, one per site, kept in
process memory. Entries are deep-copied in and out so callers can't
mutate recorded states.

NOTE: History lives in the worker that served the edit. With several
workers, pin editors to a worker or move this into the cache.
"""
import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from webforge.config import get_settings

MAX_HISTORY_ENTRIES = 100


@dataclass
class HistoryEntry:
    state: Dict[str, Any]
    description: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


class EditHistory:
    """
    Linear history with a cursor.

    Pushing after an undo drops the redo branch. When the stack is full
    the oldest entry is discarded.
    """

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        self.max_entries = max_entries
        self._entries: List[HistoryEntry] = []
        self._index = -1

    def __len__(self):
        return len(self._entries)

    def push(self, state: Dict[str, Any], description: str = "Edit") -> None:
        if self._index < len(self._entries) - 1:
            del self._entries[self._index + 1:]

        self._entries.append(HistoryEntry(copy.deepcopy(state), description))

        if len(self._entries) > self.max_entries:
            self._entries.pop(0)
        else:
            self._index += 1

    def undo(self) -> Optional[HistoryEntry]:
        if not self.can_undo():
            return None
        self._index -= 1
        return self._copy(self._entries[self._index])

    def redo(self) -> Optional[HistoryEntry]:
        if not self.can_redo():
            return None
        self._index += 1
        return self._copy(self._entries[self._index])

    def current(self) -> Optional[HistoryEntry]:
        if self._index < 0:
            return None
        return self._copy(self._entries[self._index])

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def clear(self) -> None:
        self._entries = []
        self._index = -1

    def initialize(self, state: Dict[str, Any]) -> None:
        """Reset to a single entry holding the given state."""
        self.clear()
        self.push(state, "Initial state")

    def descriptions(self) -> List[str]:
        return [entry.description for entry in self._entries]

    @staticmethod
    def _copy(entry: HistoryEntry) -> HistoryEntry:
        return HistoryEntry(copy.deepcopy(entry.state), entry.description, entry.timestamp)


_histories: Dict[str, EditHistory] = {}
_lock = threading.Lock()


def get_history(site_id: str, initial_state: Optional[Dict[str, Any]] = None) -> EditHistory:
    """
    History for a site, created on first use.

    A new history is seeded with initial_state when one is given.
    """
    with _lock:
        history = _histories.get(site_id)
        if history is None:
            history = EditHistory(get_settings().EDIT_HISTORY_SIZE)
            if initial_state is not None:
                history.initialize(initial_state)
            _histories[site_id] = history
        return history


def drop_history(site_id: str) -> None:
    with _lock:
        _histories.pop(site_id, None)
