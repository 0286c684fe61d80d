"""Device session: discovery, connection, read loop and reconnection for one macro pad.

State machine::

    idle -> searching -> connected -> reading <-> connected
                ^                        |
                +------ read failure ----+
    any state -> closing -> idle  (explicit stop)

Retries are open-ended: the session keeps searching until it is stopped.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from deckctl.core.config_gate import ConfigurationGate
from deckctl.core.debounce import DebounceGate
from deckctl.core.device_match import describe_device, first_match
from deckctl.core.errors import DeviceDiscoveryError, DeviceIoError
from deckctl.core.event_queue import EventQueue
from deckctl.core.model import ConnectionState, DetectedDevice, SessionState
from deckctl.core.notifications import NotificationChannel
from deckctl.core.report import decode
from deckctl.devices.base import HidBackend, HidStream

LOGGER = logging.getLogger(__name__)

RETRY_INTERVAL_S = 1.0
ERROR_BACKOFF_S = 2.0
READ_TIMEOUT_MS = 1000


class DeviceSession:
    def __init__(
        self,
        backend: HidBackend,
        config: ConfigurationGate,
        events: EventQueue,
        channel: NotificationChannel,
        *,
        retry_interval_s: float = RETRY_INTERVAL_S,
        error_backoff_s: float = ERROR_BACKOFF_S,
        read_timeout_ms: int = READ_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.config = config
        self.events = events
        self.channel = channel
        self.retry_interval_s = retry_interval_s
        self.error_backoff_s = error_backoff_s
        self.read_timeout_ms = read_timeout_ms
        self._clock = clock

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = SessionState.IDLE
        self._connection_state = ConnectionState.DISCONNECTED
        self._device: DetectedDevice | None = None
        self._stream: HidStream | None = None
        self._gate = DebounceGate(config.current().debounce_ms)
        self._filter = config.current().device_filter

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def device_name(self) -> str | None:
        device = self._device
        return device.name if device is not None else None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                LOGGER.warning("HID monitoring is already running")
                return
            snapshot = self.config.current()
            self._filter = snapshot.device_filter
            self._gate = DebounceGate(snapshot.debounce_ms)
            self._stop.clear()
            LOGGER.info("Starting HID device monitoring (%s)", self._filter.describe())
            self._thread = threading.Thread(target=self._run, name="deckctl-session", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._thread is None:
                return
            LOGGER.info("Stopping HID device monitoring")
            self._stop.set()
            self._thread.join()
            self._thread = None

    def _set_state(self, state: SessionState, connection: ConnectionState | None = None) -> None:
        if state is not self._state:
            LOGGER.debug("Device session %s -> %s", self._state.value, state.value)
        self._state = state
        if connection is not None:
            self._connection_state = connection

    def _run(self) -> None:
        self._set_state(SessionState.SEARCHING, ConnectionState.CONNECTING)
        try:
            while not self._stop.is_set():
                try:
                    stream = self._stream
                    if stream is None:
                        self._search_and_connect()
                    else:
                        self._read_once(stream)
                except Exception:
                    LOGGER.exception("Error in HID monitoring loop")
                    if self._stream is not None:
                        self._handle_disconnect()
                    else:
                        self._set_state(SessionState.SEARCHING, ConnectionState.ERROR)
                        self._stop.wait(self.error_backoff_s)
        finally:
            self._set_state(SessionState.CLOSING)
            if self._stream is not None:
                self._release()
                self.channel.connection_status(None)
            self._set_state(SessionState.IDLE, ConnectionState.DISCONNECTED)

    def _search_and_connect(self) -> None:
        self._set_state(SessionState.SEARCHING, ConnectionState.CONNECTING)
        try:
            device = first_match(self.backend.enumerate(), self._filter)
        except DeviceDiscoveryError as exc:
            LOGGER.error("Error enumerating HID devices: %s", exc)
            self._connection_state = ConnectionState.ERROR
            self._stop.wait(self.error_backoff_s)
            return

        if device is None:
            self._stop.wait(self.retry_interval_s)
            return

        LOGGER.info(
            "Found matching device: %s, max input report: %d bytes",
            describe_device(device),
            device.max_input_report_length,
        )
        try:
            stream = self.backend.open(device)
        except DeviceIoError as exc:
            LOGGER.error("Failed to connect to HID device: %s", exc)
            self._connection_state = ConnectionState.ERROR
            self._stop.wait(self.error_backoff_s)
            return

        self._device = device
        self._stream = stream
        self._set_state(SessionState.CONNECTED, ConnectionState.CONNECTED)
        LOGGER.info("Connected to macro pad: %s", device.name)
        self.channel.connection_status(device.name)
        self.channel.notify("Deckctl Connected", f"Device connected: {device.name}")

    def _read_once(self, stream: HidStream) -> None:
        self._set_state(SessionState.READING)
        try:
            raw = stream.read(self.read_timeout_ms)
        except DeviceIoError as exc:
            LOGGER.error("Error reading from HID device: %s", exc)
            self._handle_disconnect()
            return
        self._set_state(SessionState.CONNECTED)

        if raw is None:
            return
        LOGGER.debug("RAW HID report (%d bytes): %s", len(raw), raw.hex(" "))
        self.handle_report(raw)

    def handle_report(self, raw: bytes) -> bool:
        """Decode and debounce one report; returns True when a key code was queued."""
        code = decode(raw)
        if code is None:
            return False
        LOGGER.info("Key pressed - code 0x%02X (%d)", code, code)
        if not self._gate.accept(code, self._clock() * 1000.0):
            LOGGER.debug("Key 0x%02X debounced (too soon after last press)", code)
            return False
        self.events.push(code)
        return True

    def _handle_disconnect(self) -> None:
        name = self.device_name or "Unknown"
        self._release()
        self._set_state(SessionState.SEARCHING, ConnectionState.ERROR)
        LOGGER.warning("Macro pad disconnected: %s", name)
        self.channel.connection_status(None)
        self.channel.notify("Deckctl Disconnected", f"Device disconnected: {name}")
        self._stop.wait(self.error_backoff_s)

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        self._device = None
        if stream is not None:
            stream.close()
