"""Core data models shared by the pipeline, loader, API and CLI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from deckctl.core.errors import ActionFailure

KEY_CODE_MIN = 0xF1
KEY_CODE_MAX = 0xF9
REPORT_LENGTH = 3
DEFAULT_VENDOR_ID = 0xCAFE
DEFAULT_DEBOUNCE_MS = 200
MAX_DEBOUNCE_MS = 5000


def button_number(key_code: int) -> int:
    """Physical button number printed on the pad (0xF9 is button 1)."""
    return 0xFA - key_code


class ActionType(str, Enum):
    LAUNCH_APPLICATION = "launch_application"
    OPEN_URL = "open_url"
    EXECUTE_SCRIPT = "execute_script"
    SEND_KEYSTROKES = "send_keystrokes"
    NONE = "none"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SessionState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    CONNECTED = "connected"
    READING = "reading"
    CLOSING = "closing"


class DispatchOutcome(str, Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    UNMAPPED = "unmapped"
    DISABLED = "disabled"


@dataclass(frozen=True)
class DeviceFilter:
    vendor_id: int | None = DEFAULT_VENDOR_ID
    product_id: int | None = None

    def describe(self) -> str:
        vid = f"0x{self.vendor_id:04X}" if self.vendor_id is not None else "any"
        pid = f"0x{self.product_id:04X}" if self.product_id is not None else "any"
        return f"VID={vid}, PID={pid}"


@dataclass(frozen=True)
class ActionDefinition:
    name: str
    type: ActionType
    target: str = ""
    description: str | None = None
    arguments: str | None = None
    working_directory: str | None = None
    enabled: bool = True

    def __str__(self) -> str:
        return f"{self.name} ({self.type.value}: {self.target})"


@dataclass(frozen=True)
class KeyActionMapping:
    key_code: int
    action: ActionDefinition


@dataclass(frozen=True)
class ConfigurationSnapshot:
    mappings: Mapping[int, ActionDefinition] = field(default_factory=lambda: MappingProxyType({}))
    device_filter: DeviceFilter = field(default_factory=DeviceFilter)
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    show_notifications: bool = True
    verbose_logging: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.mappings, MappingProxyType):
            object.__setattr__(self, "mappings", MappingProxyType(dict(self.mappings)))

    def action_for(self, key_code: int) -> ActionDefinition | None:
        return self.mappings.get(key_code)

    @property
    def enabled_count(self) -> int:
        return sum(1 for action in self.mappings.values() if action.enabled)


@dataclass(frozen=True)
class DetectedDevice:
    path: bytes
    vendor_id: int
    product_id: int
    name: str
    max_input_report_length: int = 64


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    failure: ActionFailure | None = None

    @classmethod
    def ok(cls) -> ExecutionResult:
        return cls(success=True)

    @classmethod
    def failed(cls, message: str) -> ExecutionResult:
        return cls(success=False, failure=ActionFailure(message))


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str | None = None

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def failure(cls, message: str) -> ValidationResult:
        return cls(valid=False, message=message)


@dataclass(frozen=True)
class SessionStatus:
    state: SessionState
    connection_state: ConnectionState
    device_name: str | None
    mapping_count: int
