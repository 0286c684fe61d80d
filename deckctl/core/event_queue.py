"""Unbounded FIFO carrying accepted key codes from the device session to the dispatcher."""

from __future__ import annotations

import threading
from collections import deque


class EventQueue:
    def __init__(self) -> None:
        self._items: deque[int] = deque()
        self._cond = threading.Condition()

    def push(self, key_code: int) -> None:
        """Append without blocking; the queue never fills up."""
        with self._cond:
            self._items.append(key_code)
            self._cond.notify()

    def pop(self, timeout: float | None = None) -> int | None:
        """Return the oldest key code, waiting up to ``timeout`` seconds; ``None`` if still empty."""
        with self._cond:
            if not self._items:
                self._cond.wait(timeout)
            if not self._items:
                return None
            return self._items.popleft()

    def drain(self) -> list[int]:
        with self._cond:
            items = list(self._items)
            self._items.clear()
            return items

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)
