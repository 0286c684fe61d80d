"""HID backend interfaces."""

from __future__ import annotations

from typing import Protocol

from deckctl.core.model import DetectedDevice


class HidStream(Protocol):
    def read(self, timeout_ms: int) -> bytes | None:
        """Read one input report; ``None`` when nothing arrived within ``timeout_ms``.

        Raises DeviceIoError when the device fails or goes away.
        """

    def close(self) -> None:
        """Release the device handle."""


class HidBackend(Protocol):
    def enumerate(self) -> list[DetectedDevice]:
        """List attached HID devices in enumeration order."""

    def open(self, device: DetectedDevice) -> HidStream:
        """Open an exclusive stream to ``device``."""
