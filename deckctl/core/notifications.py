"""Outbound notification channel.

Pipeline threads never call the notifier directly. They post typed messages
onto a :class:`NotificationChannel`, and a single :class:`NotificationPump`
thread delivers them to the notifier capability.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Protocol, Union

LOGGER = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 3000


class Notifier(Protocol):
    def notify(self, title: str, message: str, duration_ms: int = DEFAULT_DURATION_MS) -> None:
        """Show a notification to the user. Must not block for long."""

    def update_connection_status(self, device_name: str | None = None) -> None:
        """Reflect the current connection status; ``None`` means disconnected."""


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    duration_ms: int = DEFAULT_DURATION_MS


@dataclass(frozen=True)
class ConnectionStatus:
    device_name: str | None = None


Message = Union[Notification, ConnectionStatus]


class NotificationChannel:
    def __init__(self) -> None:
        self._queue: queue.Queue[Message] = queue.Queue()

    def notify(self, title: str, message: str, duration_ms: int = DEFAULT_DURATION_MS) -> None:
        self._queue.put_nowait(Notification(title, message, duration_ms))

    def connection_status(self, device_name: str | None = None) -> None:
        self._queue.put_nowait(ConnectionStatus(device_name))

    def get(self, timeout: float) -> Message | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> list[Message]:
        items: list[Message] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items


class NotificationPump:
    """Delivers channel messages to a notifier on a dedicated thread."""

    def __init__(self, channel: NotificationChannel, notifier: Notifier, *, poll_interval_s: float = 0.1) -> None:
        self.channel = channel
        self.notifier = notifier
        self.poll_interval_s = poll_interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            LOGGER.warning("Notification pump is already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="deckctl-notify", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        # Flush whatever was posted during shutdown so the last status is not lost.
        for message in self.channel.pending():
            self.deliver(message)

    def deliver(self, message: Message) -> None:
        try:
            if isinstance(message, Notification):
                self.notifier.notify(message.title, message.message, message.duration_ms)
            else:
                self.notifier.update_connection_status(message.device_name)
        except Exception:
            LOGGER.exception("Notifier failed to deliver %r", message)

    def _run(self) -> None:
        while not self._stop.is_set():
            message = self.channel.get(timeout=self.poll_interval_s)
            if message is not None:
                self.deliver(message)
