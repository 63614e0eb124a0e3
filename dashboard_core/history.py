"""
Bounded undo/redo log over immutable document snapshots.
"""

from collections import deque
from typing import Deque, List, Optional

from dashboard_core.models import DashboardDocument

DEFAULT_HISTORY_LIMIT = 50


class HistoryManager:
    """
    Snapshot-based history. Snapshots are never mutated: the store replaces its
    document on every change instead of editing it in place.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        self.limit = limit
        self._past: Deque[DashboardDocument] = deque(maxlen=limit)
        self._future: List[DashboardDocument] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_depth(self) -> int:
        return len(self._past)

    @property
    def redo_depth(self) -> int:
        return len(self._future)

    def record(self, previous: DashboardDocument):
        """Push the pre-mutation snapshot and drop the redo branch."""
        self._past.append(previous)
        self._future.clear()

    def undo(self, current: DashboardDocument) -> Optional[DashboardDocument]:
        """Return the snapshot to restore, or None when there is nothing to undo."""
        if not self._past:
            return None
        self._future.append(current)
        return self._past.pop()

    def redo(self, current: DashboardDocument) -> Optional[DashboardDocument]:
        if not self._future:
            return None
        self._past.append(current)
        return self._future.pop()

    def clear(self):
        self._past.clear()
        self._future.clear()
