"""Linear undo/redo over immutable item snapshots."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .types import BoardItem

logger = logging.getLogger(__name__)

Snapshot = Tuple[BoardItem, ...]


class History:
    """Snapshot list plus a cursor.

    ``commit`` discards every snapshot after the cursor before appending, so
    undoing and then making a new change drops the undone branch. The list is
    bounded by ``limit``; the oldest snapshots fall off first.
    """

    def __init__(self, initial: Iterable[BoardItem] = (), limit: int = 50):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._limit = limit
        self._snapshots: List[Snapshot] = [tuple(initial)]
        self._cursor = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def depth(self) -> int:
        """Number of stored snapshots, including the initial one."""
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Snapshot:
        return self._snapshots[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def commit(self, items: Iterable[BoardItem]) -> None:
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(tuple(items))
        overflow = len(self._snapshots) - self._limit
        if overflow > 0:
            del self._snapshots[:overflow]
        self._cursor = len(self._snapshots) - 1
        logger.debug("History commit: depth=%d cursor=%d", self.depth, self._cursor)

    def undo(self) -> Optional[Snapshot]:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor]

    def redo(self) -> Optional[Snapshot]:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._snapshots[self._cursor]

    def reset(self, items: Iterable[BoardItem] = ()) -> None:
        """Forget every snapshot and start over from ``items``."""
        self._snapshots = [tuple(items)]
        self._cursor = 0
