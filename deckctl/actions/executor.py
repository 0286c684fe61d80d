"""Action executor that launches programs, URLs and scripts as child processes."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import threading
from pathlib import Path
from urllib.parse import urlparse

from deckctl.core.model import ActionDefinition, ActionType, ExecutionResult, ValidationResult
from deckctl.platform import OperatingSystem, detect_operating_system

LOGGER = logging.getLogger(__name__)

_SCRIPT_EXTENSIONS = {
    OperatingSystem.WINDOWS: (".ps1", ".bat", ".cmd", ".py"),
    OperatingSystem.LINUX: (".sh", ".py"),
    OperatingSystem.MACOS: (".sh", ".py"),
    OperatingSystem.UNKNOWN: (),
}


class SubprocessActionExecutor:
    def __init__(self, os_type: OperatingSystem | None = None) -> None:
        self.os_type = os_type or detect_operating_system()
        LOGGER.debug("Action executor initialized for %s", self.os_type.value)

    def execute(self, action: ActionDefinition, cancel: threading.Event | None = None) -> ExecutionResult:
        if not action.enabled:
            return ExecutionResult.failed(f"Action {action.name} is disabled")
        if cancel is not None and cancel.is_set():
            return ExecutionResult.failed("Cancelled before execution")

        validation = self.validate(action)
        if not validation.valid:
            LOGGER.warning("Refusing to execute action %s: %s", action.name, validation.message)
            return ExecutionResult.failed(validation.message or "Invalid action")

        LOGGER.info("Executing action: %s", action)
        try:
            if action.type is ActionType.LAUNCH_APPLICATION:
                return self._launch_application(action)
            if action.type is ActionType.OPEN_URL:
                return self._open_url(action)
            if action.type is ActionType.EXECUTE_SCRIPT:
                return self._execute_script(action)
            if action.type is ActionType.SEND_KEYSTROKES:
                return ExecutionResult.failed("Sending keystrokes is not supported")
            return ExecutionResult.ok()
        except OSError as exc:
            LOGGER.error("Failed to execute action %s: %s", action.name, exc)
            return ExecutionResult.failed(str(exc))

    def validate(self, action: ActionDefinition) -> ValidationResult:
        if action.type is ActionType.LAUNCH_APPLICATION:
            return self._validate_launch_application(action)
        if action.type is ActionType.OPEN_URL:
            return self._validate_open_url(action)
        if action.type is ActionType.EXECUTE_SCRIPT:
            return self._validate_execute_script(action)
        if action.type is ActionType.SEND_KEYSTROKES:
            if not action.target:
                return ValidationResult.failure("Keystroke sequence is required")
            return ValidationResult.success()
        return ValidationResult.success()

    def _popen(self, argv: list[str], action: ActionDefinition, **kwargs) -> subprocess.Popen:
        return subprocess.Popen(argv, cwd=action.working_directory or None, **kwargs)

    def _launch_application(self, action: ActionDefinition) -> ExecutionResult:
        argv = [action.target, *shlex.split(action.arguments or "")]
        self._popen(argv, action)
        return ExecutionResult.ok()

    def _validate_launch_application(self, action: ActionDefinition) -> ValidationResult:
        if not action.target:
            return ValidationResult.failure("Application path is required")
        # Bare command names are resolved through PATH at launch time.
        if Path(action.target).is_absolute() and not Path(action.target).is_file():
            return ValidationResult.failure(f"Application not found: {action.target}")
        return self._validate_working_directory(action)

    def _open_url(self, action: ActionDefinition) -> ExecutionResult:
        url = action.target
        if self.os_type is OperatingSystem.WINDOWS:
            os.startfile(url)  # type: ignore[attr-defined]
            return ExecutionResult.ok()
        opener = "open" if self.os_type is OperatingSystem.MACOS else "xdg-open"
        subprocess.Popen([opener, url], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return ExecutionResult.ok()

    def _validate_open_url(self, action: ActionDefinition) -> ValidationResult:
        if not action.target:
            return ValidationResult.failure("URL is required")
        parsed = urlparse(action.target)
        if not parsed.scheme or not parsed.netloc:
            return ValidationResult.failure(f"Invalid URL format: {action.target}")
        if parsed.scheme not in ("http", "https"):
            return ValidationResult.failure(f"Only HTTP and HTTPS URLs are supported: {action.target}")
        return ValidationResult.success()

    def _script_argv(self, script: Path, arguments: list[str]) -> list[str] | None:
        extension = script.suffix.lower()
        if extension not in _SCRIPT_EXTENSIONS[self.os_type]:
            return None
        if extension == ".ps1":
            return ["powershell.exe", "-ExecutionPolicy", "Bypass", "-File", str(script), *arguments]
        if extension in (".bat", ".cmd"):
            return [str(script), *arguments]
        if extension == ".sh":
            return ["/bin/bash", str(script), *arguments]
        return [sys.executable, str(script), *arguments]

    def _execute_script(self, action: ActionDefinition) -> ExecutionResult:
        script = Path(action.target)
        if not script.is_file():
            return ExecutionResult.failed(f"Script file not found: {script}")

        argv = self._script_argv(script, shlex.split(action.arguments or ""))
        if argv is None:
            return ExecutionResult.failed(f"Unsupported script type: {script.suffix}")

        process = self._popen(
            argv,
            action,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        threading.Thread(
            target=_log_script_output,
            args=(process, script.name),
            name=f"deckctl-script-{script.name}",
            daemon=True,
        ).start()
        return ExecutionResult.ok()

    def _validate_execute_script(self, action: ActionDefinition) -> ValidationResult:
        if not action.target:
            return ValidationResult.failure("Script path is required")
        script = Path(action.target)
        if not script.is_file():
            return ValidationResult.failure(f"Script file not found: {action.target}")
        supported = _SCRIPT_EXTENSIONS[self.os_type]
        if script.suffix.lower() not in supported:
            return ValidationResult.failure(
                f"Unsupported script type '{script.suffix}' for {self.os_type.value}. "
                f"Supported: {', '.join(supported)}"
            )
        return self._validate_working_directory(action)

    def _validate_working_directory(self, action: ActionDefinition) -> ValidationResult:
        if action.working_directory and not Path(action.working_directory).is_dir():
            return ValidationResult.failure(f"Working directory not found: {action.working_directory}")
        return ValidationResult.success()


def _log_script_output(process: subprocess.Popen, name: str) -> None:
    stdout, stderr = process.communicate()
    if stdout and stdout.strip():
        LOGGER.debug("Script %s output: %s", name, stdout.strip())
    if stderr and stderr.strip():
        LOGGER.warning("Script %s error: %s", name, stderr.strip())
