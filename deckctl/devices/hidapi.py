"""HID backend implementation using the hidapi bindings."""

from __future__ import annotations

import logging
from typing import Any

from deckctl.core.errors import (
    DeviceConnectError,
    DeviceDiscoveryError,
    DeviceIoError,
    FatalStartupError,
)
from deckctl.core.model import DetectedDevice

LOGGER = logging.getLogger(__name__)


def _device_name(info: dict[str, Any]) -> str:
    parts = [info.get("manufacturer_string") or "", info.get("product_string") or ""]
    name = " ".join(part.strip() for part in parts if part and part.strip())
    return name or "<unknown-device>"


class HidapiStream:
    def __init__(self, handle: Any, device: DetectedDevice) -> None:
        self._handle = handle
        self._device = device

    def read(self, timeout_ms: int) -> bytes | None:
        try:
            data = self._handle.read(self._device.max_input_report_length, timeout_ms)
        except (OSError, ValueError) as exc:
            raise DeviceIoError(f"Error reading from {self._device.name}: {exc}") from exc
        if not data:
            return None
        return bytes(data)

    def close(self) -> None:
        try:
            self._handle.close()
        except (OSError, ValueError) as exc:
            LOGGER.warning("Error closing HID stream for %s: %s", self._device.name, exc)


class HidapiBackend:
    def __init__(self) -> None:
        try:
            import hid  # type: ignore
        except ImportError as exc:
            raise FatalStartupError(
                "HID access requires 'hidapi'. Install dependency and retry."
            ) from exc
        self._hid = hid

    def enumerate(self) -> list[DetectedDevice]:
        try:
            entries = self._hid.enumerate()
        except (OSError, ValueError) as exc:
            raise DeviceDiscoveryError(f"HID enumeration failed: {exc}") from exc

        devices: list[DetectedDevice] = []
        for info in entries:
            devices.append(
                DetectedDevice(
                    path=info["path"],
                    vendor_id=info["vendor_id"],
                    product_id=info["product_id"],
                    name=_device_name(info),
                )
            )
        return devices

    def open(self, device: DetectedDevice) -> HidapiStream:
        handle = self._hid.device()
        try:
            handle.open_path(device.path)
        except (OSError, ValueError) as exc:
            raise DeviceConnectError(f"Could not open {device.name}: {exc}") from exc
        return HidapiStream(handle, device)
