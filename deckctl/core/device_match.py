"""Device-to-filter matching logic."""

from __future__ import annotations

from collections.abc import Iterable

from deckctl.core.model import DetectedDevice, DeviceFilter


def _vendor_match(device: DetectedDevice, device_filter: DeviceFilter) -> bool:
    return device_filter.vendor_id is None or device.vendor_id == device_filter.vendor_id


def _product_match(device: DetectedDevice, device_filter: DeviceFilter) -> bool:
    return device_filter.product_id is None or device.product_id == device_filter.product_id


def matches(device: DetectedDevice, device_filter: DeviceFilter) -> bool:
    return _vendor_match(device, device_filter) and _product_match(device, device_filter)


def first_match(devices: Iterable[DetectedDevice], device_filter: DeviceFilter) -> DetectedDevice | None:
    """First device in enumeration order accepted by the filter."""
    for device in devices:
        if matches(device, device_filter):
            return device
    return None


def describe_device(device: DetectedDevice) -> str:
    name = device.name or "<unknown-device>"
    return f"{name} (VID: 0x{device.vendor_id:04X}, PID: 0x{device.product_id:04X})"
