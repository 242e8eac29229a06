from collections import deque
from collections.abc import Callable

from workflow_canvas.constants import MAX_HISTORY
from workflow_canvas.models.history import HistoryEntry, invert

Applier = Callable[[HistoryEntry], None]


class HistoryManager:
    """Bounded undo/redo log of committed structural edits.

    The manager only stores entries; applying one is delegated to the
    caller-supplied *apply* function so it stays independent of the model.
    """

    def __init__(self, max_history: int = MAX_HISTORY) -> None:
        self._undo: deque[HistoryEntry] = deque(maxlen=max_history)
        self._redo: deque[HistoryEntry] = deque(maxlen=max_history)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_entries(self) -> list[HistoryEntry]:
        return list(self._undo)

    @property
    def redo_entries(self) -> list[HistoryEntry]:
        return list(self._redo)

    def push(self, entry: HistoryEntry) -> None:
        self._undo.append(entry)  # deque drops the oldest past maxlen
        self._redo.clear()

    def undo(self, apply: Applier) -> HistoryEntry | None:
        if not self._undo:
            return None
        entry = self._undo.pop()
        try:
            apply(invert(entry))
        except Exception:
            self._undo.append(entry)
            raise
        self._redo.append(entry)
        return entry

    def redo(self, apply: Applier) -> HistoryEntry | None:
        if not self._redo:
            return None
        entry = self._redo.pop()
        try:
            apply(entry)
        except Exception:
            self._redo.append(entry)
            raise
        self._undo.append(entry)
        return entry

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
