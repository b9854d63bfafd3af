from __future__ import annotations

from typing import List, Optional

import numpy as np

from core.state import MAX_HISTORY_SIZE


class SnapshotHistory:
    """
    Bounded undo history of full-image snapshots plus a redo stack.

    The top entry always equals the current image. Buffers are copied on
    the way in and on the way out, so callers may keep mutating theirs.
    """

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = int(max_size)
        self._entries: List[np.ndarray] = []
        self._redo: List[np.ndarray] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def can_undo(self) -> bool:
        return len(self._entries) >= 2

    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def top(self) -> Optional[np.ndarray]:
        return self._entries[-1].copy() if self._entries else None

    @property
    def first(self) -> Optional[np.ndarray]:
        return self._entries[0].copy() if self._entries else None

    def clear(self) -> None:
        self._entries.clear()
        self._redo.clear()

    def start(self, buf: np.ndarray) -> None:
        self._entries = [buf.copy()]
        self._redo.clear()

    def push(self, buf: np.ndarray) -> None:
        if len(self._entries) >= self.max_size:
            self._entries.pop(0)
        self._entries.append(buf.copy())
        self._redo.clear()

    def undo(self) -> Optional[np.ndarray]:
        if len(self._entries) < 2:
            return None
        self._redo.append(self._entries.pop())
        return self._entries[-1].copy()

    def redo(self) -> Optional[np.ndarray]:
        if not self._redo:
            return None
        nxt = self._redo.pop()
        if len(self._entries) >= self.max_size:
            self._entries.pop(0)
        self._entries.append(nxt.copy())
        return nxt

    def reset(self) -> Optional[np.ndarray]:
        if not self._entries:
            return None
        del self._entries[1:]
        self._redo.clear()
        return self._entries[0].copy()
