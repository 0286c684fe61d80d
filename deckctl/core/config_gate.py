"""Live configuration access for the pipeline.

Readers call :meth:`ConfigurationGate.current` without locking and always get
one complete snapshot. Writers replace the whole snapshot reference.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from deckctl.core.config_loader import LoadedConfiguration, default_configuration, load_configuration
from deckctl.core.errors import DeckctlError
from deckctl.core.model import ConfigurationSnapshot
from deckctl.core.notifications import NotificationChannel

LOGGER = logging.getLogger(__name__)

ReloadListener = Callable[[ConfigurationSnapshot, ConfigurationSnapshot], None]
Loader = Callable[[str | Path | None], LoadedConfiguration]


class ConfigurationGate:
    def __init__(
        self,
        path: str | Path | None = None,
        *,
        channel: NotificationChannel | None = None,
        loader: Loader = load_configuration,
        snapshot: ConfigurationSnapshot | None = None,
    ) -> None:
        self.path = path
        self.channel = channel
        self._loader = loader
        self._write_lock = threading.Lock()
        self._snapshot = snapshot or ConfigurationSnapshot()
        self._listeners: list[ReloadListener] = []
        self.errors: tuple[str, ...] = ()

    def current(self) -> ConfigurationSnapshot:
        return self._snapshot

    def add_reload_listener(self, listener: ReloadListener) -> None:
        self._listeners.append(listener)

    def remove_reload_listener(self, listener: ReloadListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def replace(self, snapshot: ConfigurationSnapshot) -> ConfigurationSnapshot:
        """Swap in ``snapshot`` and return the one it replaced."""
        with self._write_lock:
            previous, self._snapshot = self._snapshot, snapshot
        return previous

    def inspect(self) -> LoadedConfiguration:
        """Read the configuration file without touching the live snapshot.

        An unusable file yields the packaged default, with the failure reported
        first in ``errors``.
        """
        try:
            loaded = self._loader(self.path)
        except DeckctlError as exc:
            LOGGER.error("Failed to load configuration, using defaults: %s", exc)
            loaded = default_configuration()
            failures = getattr(exc, "errors", (str(exc),))
            loaded = LoadedConfiguration(
                snapshot=loaded.snapshot,
                errors=tuple(failures) + loaded.errors,
                source=loaded.source,
            )
        return loaded

    def load(self) -> tuple[str, ...]:
        """Initial load; falls back to the packaged default when the file is unusable."""
        loaded = self.inspect()
        self.replace(loaded.snapshot)
        self.errors = loaded.errors
        return loaded.errors

    def reload(self) -> bool:
        """Re-read the configuration; keeps the last good snapshot on failure."""
        LOGGER.info("Reloading configuration")
        try:
            loaded = self._loader(self.path)
        except DeckctlError as exc:
            LOGGER.error("Failed to reload configuration, keeping previous: %s", exc)
            if self.channel is not None:
                self.channel.notify("Configuration Error", f"Reload failed: {exc}")
            return False

        for error in loaded.errors:
            LOGGER.warning("  - %s", error)
        self.errors = loaded.errors
        previous = self.replace(loaded.snapshot)
        count = len(loaded.snapshot.mappings)
        LOGGER.info("Configuration reloaded with %d key mappings", count)
        if self.channel is not None:
            self.channel.notify("Configuration Reloaded", f"Loaded {count} key mappings")
        for listener in list(self._listeners):
            try:
                listener(previous, loaded.snapshot)
            except Exception:
                LOGGER.exception("Configuration reload listener failed")
        return True
