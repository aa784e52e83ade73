"""
Bounded undo/redo history of Annotation snapshots.

History is linear: committing after an undo discards the redo branch. While a
snapshot is being restored the history is in REPLAYING mode, and commits made
from that state (for example by state-sync code reacting to the restore) are
ignored instead of being recorded as new entries.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional

from .models import Annotation

log = logging.getLogger(__name__)

MAX_HISTORY_SIZE = 50


class HistoryMode(Enum):
    """Whether the history accepts new entries."""

    EDITING = "editing"
    REPLAYING = "replaying"


class History:
    """
    A bounded list of Annotation snapshots plus a cursor.

    The entry at the cursor is the state the live Annotation was last
    committed or restored to.

    Attributes:
        max_size: Maximum number of snapshots kept; the oldest is evicted.
        mode: Current HistoryMode.
    """

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.mode = HistoryMode.EDITING
        self._snapshots: List[Annotation] = []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[Annotation]:
        """Snapshot at the cursor, or None if the history is empty."""
        if not self._snapshots:
            return None
        return self._snapshots[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def reset(self, initial: Optional[Annotation] = None) -> None:
        """Drop all entries, optionally seeding the origin snapshot."""
        self._snapshots = [initial] if initial is not None else []
        self._cursor = 0
        self.mode = HistoryMode.EDITING

    def commit(self, annotation: Annotation) -> bool:
        """
        Record a new snapshot after the cursor.

        Any redo entries are discarded. When the size cap is exceeded the
        oldest snapshot is evicted and the cursor keeps pointing at the new
        entry.

        Returns:
            True if the snapshot was recorded, False if ignored because the
            history is replaying.
        """
        if self.mode is HistoryMode.REPLAYING:
            log.debug("Ignoring commit while replaying history")
            return False

        self._snapshots = self._snapshots[: self._cursor + 1]
        self._snapshots.append(annotation)
        if len(self._snapshots) > self.max_size:
            del self._snapshots[0]
        self._cursor = len(self._snapshots) - 1
        return True

    def undo(self) -> Optional[Annotation]:
        """
        Step the cursor back.

        Returns:
            A clone of the snapshot now at the cursor, or None if there is
            nothing to undo.
        """
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor].clone()

    def redo(self) -> Optional[Annotation]:
        """Step the cursor forward; see undo()."""
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._snapshots[self._cursor].clone()

    @contextmanager
    def replaying(self) -> Iterator["History"]:
        """Hold the history in REPLAYING mode for the duration of the block."""
        previous = self.mode
        self.mode = HistoryMode.REPLAYING
        try:
            yield self
        finally:
            self.mode = previous
