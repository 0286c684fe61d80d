from __future__ import annotations

from pathlib import Path

import pytest

from deckctl.core.config_loader import config_path, load_configuration, validate_actions
from deckctl.core.errors import ConfigLoadError, ConfigValidationError
from deckctl.core.model import ActionType, ValidationResult


def _write_config(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.delenv("DECKCTL_CONFIG", raising=False)


def test_missing_user_config_uses_packaged_default() -> None:
    loaded = load_configuration()
    assert loaded.errors == ()
    assert loaded.source == "<packaged default>"
    snapshot = loaded.snapshot
    assert snapshot.device_filter.vendor_id == 0xCAFE
    assert snapshot.device_filter.product_id is None
    assert snapshot.debounce_ms == 200
    assert snapshot.mappings[0xF1].type is ActionType.LAUNCH_APPLICATION
    assert snapshot.mappings[0xF3].target == "https://github.com"


def test_user_config_from_xdg_dir(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "deckctl" / "config.yaml",
        """
device:
  vendor_id: 0x2E8A
  product_id: 0x000A
debounce_ms: 150
show_notifications: false
key_mappings:
  - key_code: 0xF5
    action:
      name: Backup
      type: execute_script
      target: /home/me/backup.sh
      arguments: --fast
      working_directory: /home/me
      enabled: false
""",
    )

    loaded = load_configuration()
    snapshot = loaded.snapshot
    assert loaded.errors == ()
    assert snapshot.device_filter.vendor_id == 0x2E8A
    assert snapshot.device_filter.product_id == 0x000A
    assert snapshot.debounce_ms == 150
    assert snapshot.show_notifications is False
    action = snapshot.mappings[0xF5]
    assert action.name == "Backup"
    assert action.arguments == "--fast"
    assert action.working_directory == "/home/me"
    assert action.enabled is False
    assert snapshot.enabled_count == 0


def test_env_var_overrides_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = _write_config(tmp_path / "elsewhere.yaml", "debounce_ms: 10\n")
    monkeypatch.setenv("DECKCTL_CONFIG", str(path))
    assert config_path() == path
    assert load_configuration().snapshot.debounce_ms == 10


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_configuration(tmp_path / "nope.yaml")


def test_semantic_errors_are_all_collected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "config.yaml",
        """
debounce_ms: 9000
key_mappings:
  - key_code: 0x10
    action:
      name: Out Of Range
      type: open_url
      target: https://example.com
  - key_code: 0xF2
    action:
      type: launch_application
  - key_code: 0xF3
    action:
      name: First
      type: none
  - key_code: 0xF3
    action:
      name: Second
      type: none
""",
    )

    loaded = load_configuration(path)
    errors = "\n".join(loaded.errors)
    assert "Invalid key code: 0x10" in errors
    assert "0xF2: Action name is required" in errors
    assert "0xF2: Action target is required for launch_application" in errors
    assert "Duplicate mapping found for key code: 0xF3" in errors
    assert "Invalid debounce time: 9000ms" in errors
    assert len(loaded.errors) == 5
    # Out-of-range debounce falls back to the default and first duplicate wins.
    assert loaded.snapshot.debounce_ms == 200
    assert loaded.snapshot.mappings[0xF3].name == "First"


def test_schema_errors_raise_with_every_problem(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "config.yaml",
        """
debounce_ms: fast
key_mappings:
  - key_code: 0xF1
    action:
      name: Bad Type
      type: teleport
""",
    )

    with pytest.raises(ConfigValidationError) as exc:
        load_configuration(path)
    assert len(exc.value.errors) == 2


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "config.yaml",
        """
debounce_ms: 100
debounce_ms: 200
""",
    )

    with pytest.raises(ConfigValidationError):
        load_configuration(path)


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "key_mappings: [\n")
    with pytest.raises(ConfigValidationError):
        load_configuration(path)


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "")
    loaded = load_configuration(path)
    assert loaded.errors == ()
    assert dict(loaded.snapshot.mappings) == {}
    assert loaded.snapshot.device_filter.vendor_id == 0xCAFE


def test_validate_actions_reports_executor_failures() -> None:
    class PickyExecutor:
        def execute(self, action, cancel=None):
            raise AssertionError("not called")

        def validate(self, action):
            if action.type is ActionType.OPEN_URL:
                return ValidationResult.failure("Only HTTP and HTTPS URLs are supported")
            return ValidationResult.success()

    snapshot = load_configuration().snapshot
    errors = validate_actions(snapshot, PickyExecutor())
    assert errors == ["0xF3 (Open GitHub): Only HTTP and HTTPS URLs are supported"]
