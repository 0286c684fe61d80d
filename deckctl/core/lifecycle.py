"""Service layer wiring the pipeline together; used by the CLI and the public API."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from deckctl.actions.base import ActionExecutor
from deckctl.core.config_gate import ConfigurationGate
from deckctl.core.config_loader import validate_actions
from deckctl.core.device_match import matches
from deckctl.core.dispatcher import Dispatcher
from deckctl.core.event_queue import EventQueue
from deckctl.core.model import ConfigurationSnapshot, DetectedDevice, SessionStatus
from deckctl.core.notifications import NotificationChannel, NotificationPump, Notifier
from deckctl.core.session import DeviceSession
from deckctl.devices.base import HidBackend

LOGGER = logging.getLogger(__name__)


class LifecycleController:
    def __init__(
        self,
        *,
        config_path: str | Path | None = None,
        backend: HidBackend | None = None,
        executor: ActionExecutor | None = None,
        notifier: Notifier | None = None,
        config: ConfigurationGate | None = None,
        session_options: dict | None = None,
        dispatcher_options: dict | None = None,
    ) -> None:
        self.channel = NotificationChannel()
        self.config = config or ConfigurationGate(config_path)
        self.config.channel = self.channel
        self.backend = backend or _default_backend()
        self.executor = executor or _default_executor()
        self.notifier = notifier or _default_notifier()
        self.events = EventQueue()
        self.pump = NotificationPump(self.channel, self.notifier)
        self.dispatcher = Dispatcher(
            self.events, self.config, self.executor, self.channel, **(dispatcher_options or {})
        )
        self.session = DeviceSession(
            self.backend, self.config, self.events, self.channel, **(session_options or {})
        )
        self.validation_errors: tuple[str, ...] = ()
        self._lock = threading.RLock()
        self._started = False
        self.config.add_reload_listener(self._on_reload)

    @property
    def started(self) -> bool:
        return self._started

    def check(self) -> tuple[ConfigurationSnapshot, tuple[str, ...]]:
        """Read and validate the configuration file without applying it.

        The live snapshot is left alone; use :meth:`reload` to apply a file.
        """
        loaded = self.config.inspect()
        errors = [*loaded.errors, *validate_actions(loaded.snapshot, self.executor)]
        return loaded.snapshot, tuple(errors)

    def validate(self) -> tuple[str, ...]:
        _, errors = self.check()
        return errors

    def start(self) -> None:
        with self._lock:
            if self._started:
                LOGGER.warning("Deckctl service is already running")
                return
            LOGGER.info("Deckctl service starting...")

            LOGGER.info("Loading configuration...")
            errors = list(self.config.load())
            errors.extend(validate_actions(self.config.current(), self.executor))
            self.validation_errors = tuple(errors)
            if errors:
                LOGGER.warning("Configuration validation errors:")
                for error in errors:
                    LOGGER.warning("  - %s", error)

            self.pump.start()
            self.channel.connection_status(None)

            LOGGER.info("Starting message dispatcher...")
            self.dispatcher.start()

            LOGGER.info("Starting HID device monitoring...")
            self.session.start()

            self._started = True
            snapshot = self.config.current()
            LOGGER.info("Deckctl service started successfully")
            self.channel.notify(
                "Deckctl Started",
                f"Monitoring for macro pad... ({snapshot.enabled_count} actions configured)",
            )

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            LOGGER.info("Shutting down deckctl services...")
            self.session.stop()
            self.dispatcher.stop()
            self.pump.stop()
            self._started = False
            LOGGER.info("Deckctl service stopped successfully")

    def reload(self) -> bool:
        return self.config.reload()

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self.session.state,
            connection_state=self.session.connection_state,
            device_name=self.session.device_name,
            mapping_count=len(self.config.current().mappings),
        )

    def list_devices(self) -> list[DetectedDevice]:
        return self.backend.enumerate()

    def matching_devices(self) -> list[DetectedDevice]:
        device_filter = self.config.current().device_filter
        return [device for device in self.list_devices() if matches(device, device_filter)]

    def _on_reload(self, previous: ConfigurationSnapshot, current: ConfigurationSnapshot) -> None:
        if previous.device_filter == current.device_filter and previous.debounce_ms == current.debounce_ms:
            return
        with self._lock:
            if not self._started:
                return
            LOGGER.info("Device settings changed, restarting HID device monitoring")
            self.session.stop()
            self.session.start()


def _default_backend() -> HidBackend:
    from deckctl.devices.hidapi import HidapiBackend

    return HidapiBackend()


def _default_executor() -> ActionExecutor:
    from deckctl.actions.executor import SubprocessActionExecutor

    return SubprocessActionExecutor()


def _default_notifier() -> Notifier:
    from deckctl.platform import select_notifier

    return select_notifier()
