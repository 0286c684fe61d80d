"""Stable public API for building tooling on top of deckctl.

This module is the supported integration surface for third-party callers
(tray applications, settings editors, scripts). Avoid importing from internal
modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from deckctl.actions.base import ActionExecutor
from deckctl.core.errors import (
    ActionFailure,
    ConfigLoadError,
    ConfigurationMissingMapping,
    ConfigValidationError,
    DeckctlError,
    DecodeError,
    DeviceConnectError,
    DeviceDiscoveryError,
    DeviceIoError,
    FatalStartupError,
)
from deckctl.core.lifecycle import LifecycleController
from deckctl.core.model import (
    ActionDefinition,
    ActionType,
    ConfigurationSnapshot,
    ConnectionState,
    DetectedDevice,
    DeviceFilter,
    ExecutionResult,
    KeyActionMapping,
    SessionState,
    SessionStatus,
    ValidationResult,
)
from deckctl.core.notifications import Notifier
from deckctl.core.report import decode
from deckctl.devices.base import HidBackend, HidStream

__all__ = [
    "DeckctlError",
    "ActionFailure",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigurationMissingMapping",
    "DecodeError",
    "DeviceConnectError",
    "DeviceDiscoveryError",
    "DeviceIoError",
    "FatalStartupError",
    "ActionDefinition",
    "ActionType",
    "ConfigurationSnapshot",
    "ConnectionState",
    "DetectedDevice",
    "DeviceFilter",
    "ExecutionResult",
    "KeyActionMapping",
    "SessionState",
    "SessionStatus",
    "ValidationResult",
    "ActionExecutor",
    "HidBackend",
    "HidStream",
    "Notifier",
    "Client",
]


class Client:
    """Public client for running and inspecting the macro pad service.

    A `Client` wraps configuration loading, device discovery and the key-event
    pipeline behind a stable API. Every capability (HID backend, action
    executor, notifier) can be injected; the defaults use hidapi, child
    processes and the platform's desktop notifications.
    """

    def __init__(
        self,
        *,
        config_path: str | Path | None = None,
        backend: HidBackend | None = None,
        executor: ActionExecutor | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._controller = LifecycleController(
            config_path=config_path,
            backend=backend,
            executor=executor,
            notifier=notifier,
        )

    @property
    def configuration(self) -> ConfigurationSnapshot:
        return self._controller.config.current()

    @property
    def validation_errors(self) -> tuple[str, ...]:
        return self._controller.validation_errors

    def validate(self) -> tuple[str, ...]:
        return self._controller.validate()

    def list_devices(self) -> list[DetectedDevice]:
        return self._controller.list_devices()

    def matching_devices(self) -> list[DetectedDevice]:
        if not self._controller.started:
            self._controller.config.load()
        return self._controller.matching_devices()

    def decode(self, raw: bytes) -> int | None:
        return decode(raw)

    def start(self) -> None:
        self._controller.start()

    def stop(self) -> None:
        self._controller.stop()

    def reload(self) -> bool:
        return self._controller.reload()

    def status(self) -> SessionStatus:
        return self._controller.status()

    def __enter__(self) -> Client:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
