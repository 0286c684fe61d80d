"""Domain-specific errors for deckctl."""


class DeckctlError(Exception):
    """Base error for deckctl."""


class ConfigLoadError(DeckctlError):
    """Raised when the configuration file cannot be read."""


class ConfigValidationError(DeckctlError):
    """Raised when a configuration document does not conform to schema."""

    def __init__(self, message: str, errors: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.errors = errors or (message,)


class DecodeError(DeckctlError):
    """Raised when a raw HID report cannot be decoded into a key code."""


class DeviceDiscoveryError(DeckctlError):
    """Raised when HID device enumeration fails."""


class DeviceIoError(DeckctlError):
    """Base error for reads and writes on an open HID device."""


class DeviceConnectError(DeviceIoError):
    """Raised when a matched HID device cannot be opened."""


class ConfigurationMissingMapping(DeckctlError):
    """Raised when a key code has no action bound in the configuration."""

    def __init__(self, key_code: int) -> None:
        super().__init__(f"No action configured for key code 0x{key_code:02X}")
        self.key_code = key_code


class ActionFailure(DeckctlError):
    """Describes why an action could not be executed."""


class FatalStartupError(DeckctlError):
    """Raised when the service cannot initialize one of its capabilities."""
