"""Per-key press debouncing."""

from __future__ import annotations


class DebounceGate:
    """Suppresses presses of a key arriving within ``window_ms`` of its last accepted press.

    Only accepted presses are recorded, so a rapidly repeating signal cannot keep
    pushing the window forward. Keys are tracked independently. Not thread-safe;
    the owning session's read loop is the only caller.
    """

    def __init__(self, window_ms: int) -> None:
        self.window_ms = window_ms
        self._last_accepted: dict[int, float] = {}

    def accept(self, key_code: int, now_ms: float) -> bool:
        last = self._last_accepted.get(key_code)
        if last is not None and now_ms - last < self.window_ms:
            return False
        self._last_accepted[key_code] = now_ms
        return True

    def reset(self) -> None:
        self._last_accepted.clear()
