"""Configuration loading and validation for YAML-based deckctl configuration."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from jsonschema import validators

from deckctl.core.errors import ConfigLoadError, ConfigValidationError
from deckctl.core.model import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_VENDOR_ID,
    MAX_DEBOUNCE_MS,
    ActionDefinition,
    ActionType,
    ConfigurationSnapshot,
    DeviceFilter,
    KeyActionMapping,
)
from deckctl.core.report import is_valid_key_code

if TYPE_CHECKING:
    from deckctl.actions.base import ActionExecutor

CONFIG_ENV_VAR = "DECKCTL_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[Any, Any]:
    mapping: dict[Any, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfiguration:
    snapshot: ConfigurationSnapshot
    errors: tuple[str, ...]
    source: str


def _load_schema_validator() -> Any:
    schema_text = resources.files("deckctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_path(override: str | Path | None = None) -> Path:
    """Resolve the user configuration path: explicit override, env var, then XDG."""
    if override:
        return Path(override).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "deckctl/config.yaml"


def _packaged_default() -> Traversable:
    return resources.files("deckctl.defaults").joinpath("config.yaml")


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read configuration file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Configuration file {path} must contain a mapping at root")
    return loaded


def _schema_errors(doc: dict[str, Any]) -> list[str]:
    validator = _load_schema_validator()
    errors: list[str] = []
    for error in sorted(validator.iter_errors(doc), key=lambda e: [str(p) for p in e.path]):
        path = ".".join(str(p) for p in error.path)
        errors.append(f"{path}: {error.message}" if path else error.message)
    return errors


def _build_action(doc: dict[str, Any]) -> ActionDefinition:
    return ActionDefinition(
        name=(doc.get("name") or "").strip(),
        type=ActionType(doc["type"]),
        target=(doc.get("target") or "").strip(),
        description=doc.get("description"),
        arguments=doc.get("arguments"),
        working_directory=doc.get("working_directory"),
        enabled=doc.get("enabled", True),
    )


def validate_mappings(mappings: Iterable[KeyActionMapping]) -> list[str]:
    """Collect every semantic problem in ``mappings`` instead of stopping at the first."""
    errors: list[str] = []
    seen: set[int] = set()
    reported_duplicates: set[int] = set()
    for mapping in mappings:
        code = mapping.key_code
        if not is_valid_key_code(code):
            errors.append(f"Invalid key code: 0x{code:02X}. Must be 0xF1 (241) - 0xF9 (249).")
        if not mapping.action.name:
            errors.append(f"0x{code:02X}: Action name is required")
        if mapping.action.type is not ActionType.NONE and not mapping.action.target:
            errors.append(f"0x{code:02X}: Action target is required for {mapping.action.type.value}")
        if code in seen and code not in reported_duplicates:
            errors.append(f"Duplicate mapping found for key code: 0x{code:02X}")
            reported_duplicates.add(code)
        seen.add(code)
    return errors


def build_snapshot(doc: dict[str, Any], source: str) -> LoadedConfiguration:
    schema_errors = _schema_errors(doc)
    if schema_errors:
        raise ConfigValidationError(
            f"Schema validation failed for {source}: {schema_errors[0]}",
            tuple(schema_errors),
        )

    device_doc = doc.get("device", {})
    device_filter = DeviceFilter(
        vendor_id=device_doc.get("vendor_id", DEFAULT_VENDOR_ID),
        product_id=device_doc.get("product_id"),
    )

    key_mappings = [
        KeyActionMapping(key_code=int(entry["key_code"]), action=_build_action(entry["action"]))
        for entry in doc.get("key_mappings", [])
    ]
    errors = validate_mappings(key_mappings)

    debounce_ms = doc.get("debounce_ms", DEFAULT_DEBOUNCE_MS)
    if not 0 <= debounce_ms <= MAX_DEBOUNCE_MS:
        errors.append(f"Invalid debounce time: {debounce_ms}ms. Must be 0-{MAX_DEBOUNCE_MS}ms.")
        debounce_ms = DEFAULT_DEBOUNCE_MS

    mappings: dict[int, ActionDefinition] = {}
    for mapping in key_mappings:
        # First definition wins; the duplicate is already reported above.
        mappings.setdefault(mapping.key_code, mapping.action)

    snapshot = ConfigurationSnapshot(
        mappings=mappings,
        device_filter=device_filter,
        debounce_ms=debounce_ms,
        show_notifications=doc.get("show_notifications", True),
        verbose_logging=doc.get("verbose_logging", False),
    )
    return LoadedConfiguration(snapshot=snapshot, errors=tuple(errors), source=source)


def default_configuration() -> LoadedConfiguration:
    path = _packaged_default()
    return build_snapshot(_read_yaml(path), "<packaged default>")


def load_configuration(path: str | Path | None = None) -> LoadedConfiguration:
    """Load and validate the configuration file.

    A missing user file yields the packaged default. Unreadable files and
    structural problems raise; semantic problems are returned in ``errors``.
    """
    resolved = config_path(path)
    if not resolved.exists():
        if path is not None:
            raise ConfigLoadError(f"Configuration file {resolved} does not exist")
        LOGGER.info("No configuration at %s, using packaged default", resolved)
        return default_configuration()

    LOGGER.info("Loading configuration from %s", resolved)
    loaded = build_snapshot(_read_yaml(resolved), str(resolved))
    LOGGER.info("Loaded configuration with %d key mappings", len(loaded.snapshot.mappings))
    return loaded


def validate_actions(snapshot: ConfigurationSnapshot, executor: ActionExecutor) -> list[str]:
    errors: list[str] = []
    for key_code, action in sorted(snapshot.mappings.items()):
        if not action.enabled:
            continue
        result = executor.validate(action)
        if not result.valid:
            errors.append(f"0x{key_code:02X} ({action.name}): {result.message}")
    return errors
