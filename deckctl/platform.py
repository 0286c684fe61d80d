"""Runtime platform detection and per-platform notifier selection."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from enum import Enum

from deckctl.core.notifications import DEFAULT_DURATION_MS, Notifier

LOGGER = logging.getLogger(__name__)


class OperatingSystem(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"
    UNKNOWN = "unknown"


def detect_operating_system(platform: str | None = None) -> OperatingSystem:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return OperatingSystem.WINDOWS
    if platform.startswith("linux"):
        return OperatingSystem.LINUX
    if platform == "darwin":
        return OperatingSystem.MACOS
    return OperatingSystem.UNKNOWN


class LogNotifier:
    """Notifier that only writes to the log; also tracks the connection status."""

    def __init__(self) -> None:
        self.device_name: str | None = None

    def notify(self, title: str, message: str, duration_ms: int = DEFAULT_DURATION_MS) -> None:
        LOGGER.info("Notification: %s - %s", title, message.replace("\n", " "))

    def update_connection_status(self, device_name: str | None = None) -> None:
        self.device_name = device_name
        if device_name:
            LOGGER.info("Status: connected to %s", device_name)
        else:
            LOGGER.info("Status: not connected")


class NotifySendNotifier(LogNotifier):
    """Desktop notifications through libnotify's ``notify-send``."""

    def __init__(self, command: str = "notify-send") -> None:
        super().__init__()
        self.command = command

    def notify(self, title: str, message: str, duration_ms: int = DEFAULT_DURATION_MS) -> None:
        super().notify(title, message, duration_ms)
        try:
            subprocess.run(
                [self.command, "-a", "deckctl", "-t", str(duration_ms), title, message],
                check=False,
                capture_output=True,
                timeout=5,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            LOGGER.warning("notify-send failed: %s", exc)


class OsascriptNotifier(LogNotifier):
    """Notification Center alerts through ``osascript``."""

    def notify(self, title: str, message: str, duration_ms: int = DEFAULT_DURATION_MS) -> None:
        super().notify(title, message, duration_ms)
        script = f"display notification {_applescript_string(message)} with title {_applescript_string(title)}"
        try:
            subprocess.run(["osascript", "-e", script], check=False, capture_output=True, timeout=5)
        except (OSError, subprocess.TimeoutExpired) as exc:
            LOGGER.warning("osascript notification failed: %s", exc)


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def select_notifier(os_type: OperatingSystem | None = None) -> Notifier:
    """Pick the notifier implementation for this machine; falls back to logging only."""
    os_type = os_type or detect_operating_system()
    if os_type is OperatingSystem.LINUX and shutil.which("notify-send"):
        return NotifySendNotifier()
    if os_type is OperatingSystem.MACOS and shutil.which("osascript"):
        return OsascriptNotifier()
    LOGGER.debug("No desktop notifier available for %s, logging notifications only", os_type.value)
    return LogNotifier()
