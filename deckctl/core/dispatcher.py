"""Serial dispatch of queued key codes to configured actions."""

from __future__ import annotations

import logging
import threading
from pathlib import PurePath
from urllib.parse import urlparse

from deckctl.actions.base import ActionExecutor
from deckctl.core.config_gate import ConfigurationGate
from deckctl.core.errors import ConfigurationMissingMapping, DeckctlError
from deckctl.core.event_queue import EventQueue
from deckctl.core.model import ActionDefinition, ActionType, DispatchOutcome, button_number
from deckctl.core.notifications import NotificationChannel

LOGGER = logging.getLogger(__name__)

IDLE_POLL_S = 0.05
FAULT_PAUSE_S = 1.0


def describe_action(action: ActionDefinition) -> str:
    if action.type is ActionType.LAUNCH_APPLICATION:
        return f"Launching {PurePath(action.target).stem}"
    if action.type is ActionType.OPEN_URL:
        return f"Opening {urlparse(action.target).hostname or action.target}"
    if action.type is ActionType.EXECUTE_SCRIPT:
        return f"Running {PurePath(action.target).name}"
    if action.type is ActionType.SEND_KEYSTROKES:
        return "Sending keystrokes"
    return action.description or "Executing action"


class Dispatcher:
    def __init__(
        self,
        events: EventQueue,
        config: ConfigurationGate,
        executor: ActionExecutor,
        channel: NotificationChannel,
        *,
        idle_poll_s: float = IDLE_POLL_S,
        fault_pause_s: float = FAULT_PAUSE_S,
    ) -> None:
        self.events = events
        self.config = config
        self.executor = executor
        self.channel = channel
        self.idle_poll_s = idle_poll_s
        self.fault_pause_s = fault_pause_s
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                LOGGER.warning("Dispatcher is already running")
                return
            LOGGER.info("Starting key dispatcher")
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="deckctl-dispatch", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._thread is None:
                return
            LOGGER.info("Stopping key dispatcher")
            self._stop.set()
            self._thread.join()
            self._thread = None
        dropped = self.events.drain()
        if dropped:
            LOGGER.info("Discarded %d pending key press(es) on shutdown", len(dropped))

    def _run(self) -> None:
        LOGGER.debug("Dispatch loop started")
        while not self._stop.is_set():
            key_code = self.events.pop(timeout=self.idle_poll_s)
            if key_code is None:
                continue
            try:
                self.dispatch(key_code)
            except Exception:
                LOGGER.exception("Error processing key code 0x%02X", key_code)
                self._stop.wait(self.fault_pause_s)
        LOGGER.debug("Dispatch loop stopped")

    def dispatch(self, key_code: int) -> DispatchOutcome:
        """Resolve ``key_code`` against the current snapshot and run its action."""
        snapshot = self.config.current()
        LOGGER.info("Processing key 0x%02X (%d)", key_code, key_code)

        action = snapshot.action_for(key_code)
        if action is None:
            missing = ConfigurationMissingMapping(key_code)
            LOGGER.warning("%s", missing)
            self.channel.notify(
                "No Action Configured",
                f"Button #{button_number(key_code)} with key code 0x{key_code:02X} ({key_code}) "
                "has no action assigned",
            )
            return DispatchOutcome.UNMAPPED

        if not action.enabled:
            LOGGER.debug("Action '%s' for key 0x%02X is disabled", action.name, key_code)
            return DispatchOutcome.DISABLED

        LOGGER.info("Executing action '%s' for key 0x%02X", action.name, key_code)
        try:
            result = self.executor.execute(action, self._stop)
        except (DeckctlError, OSError) as exc:
            LOGGER.error("Error executing action '%s': %s", action.name, exc)
            self.channel.notify("Action Error", f"Error executing {action.name}: {exc}")
            return DispatchOutcome.FAILED

        if not result.success:
            LOGGER.warning("Action '%s' execution failed: %s", action.name, result.failure)
            self.channel.notify("Action Failed", f"{action.name} could not be executed")
            return DispatchOutcome.FAILED

        LOGGER.info("Action '%s' executed successfully", action.name)
        if snapshot.show_notifications:
            self.channel.notify(
                action.name,
                f"{describe_action(action)}\nCommand for key code 0x{key_code:02X} ({key_code}) was executed.",
            )
        return DispatchOutcome.EXECUTED
