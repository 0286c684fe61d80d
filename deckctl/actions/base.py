"""Action executor interface."""

from __future__ import annotations

import threading
from typing import Protocol

from deckctl.core.model import ActionDefinition, ExecutionResult, ValidationResult


class ActionExecutor(Protocol):
    def execute(self, action: ActionDefinition, cancel: threading.Event | None = None) -> ExecutionResult:
        """Run ``action``; failures are returned, not raised."""

    def validate(self, action: ActionDefinition) -> ValidationResult:
        """Check whether ``action`` can run on this machine."""
