from __future__ import annotations

from pathlib import Path

from deckctl.core.config_gate import ConfigurationGate
from deckctl.core.lifecycle import LifecycleController
from deckctl.core.model import ConnectionState, DetectedDevice, SessionState

from fakes import PAD, FakeBackend, FakeClock, FakeStream, RecordingExecutor, RecordingNotifier, wait_for

NOTEPAD_CONFIG = """
device:
  vendor_id: 0xCAFE
debounce_ms: 200
key_mappings:
  - key_code: 0xF1
    action:
      name: Notepad
      type: launch_application
      target: notepad
"""

PICO = DetectedDevice(path=b"/dev/hidraw7", vendor_id=0x2E8A, product_id=0x000A, name="Pico Pad")

FAST_SESSION = {"retry_interval_s": 0.01, "error_backoff_s": 0.02, "read_timeout_ms": 10}
FAST_DISPATCHER = {"idle_poll_s": 0.01, "fault_pause_s": 0.05}


def _controller(
    config_file: Path,
    backend: FakeBackend,
    *,
    clock: FakeClock | None = None,
    executor: RecordingExecutor | None = None,
    notifier: RecordingNotifier | None = None,
) -> LifecycleController:
    session_options = dict(FAST_SESSION)
    if clock is not None:
        session_options["clock"] = clock
    return LifecycleController(
        config=ConfigurationGate(config_file),
        backend=backend,
        executor=executor or RecordingExecutor(),
        notifier=notifier or RecordingNotifier(),
        session_options=session_options,
        dispatcher_options=FAST_DISPATCHER,
    )


def _config(tmp_path: Path, content: str = NOTEPAD_CONFIG) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_press_release_bounce_press_launches_twice(tmp_path: Path) -> None:
    clock = FakeClock(0.0)
    stream = FakeStream(
        [
            (bytes([0x02, 0xF1, 0xFF]), 1.000),
            (bytes([0x02, 0xF1, 0x00]), 1.050),
            (bytes([0x02, 0xF1, 0xFF]), 1.100),
            (bytes([0x02, 0xF1, 0xFF]), 1.300),
        ],
        clock=clock,
    )
    executor = RecordingExecutor()
    notifier = RecordingNotifier()
    controller = _controller(
        _config(tmp_path),
        FakeBackend(devices=[PAD], streams=[stream]),
        clock=clock,
        executor=executor,
        notifier=notifier,
    )

    controller.start()
    try:
        assert wait_for(lambda: not stream.reads and len(executor.names) == 2)
    finally:
        controller.stop()

    assert executor.names == ["Notepad", "Notepad"]
    assert all(action.target == "notepad" for action in executor.executed)
    titles = notifier.titles()
    assert "Deckctl Started" in titles
    assert "Deckctl Connected" in titles
    assert titles.count("Notepad") == 2


def test_start_and_stop_bring_every_component_up_and_down(tmp_path: Path) -> None:
    stream = FakeStream()
    notifier = RecordingNotifier()
    controller = _controller(_config(tmp_path), FakeBackend(devices=[PAD], streams=[stream]), notifier=notifier)

    controller.start()
    controller.start()
    assert controller.started
    assert controller.dispatcher.running
    assert controller.pump.running
    assert wait_for(lambda: controller.status().connection_state is ConnectionState.CONNECTED)

    status = controller.status()
    assert status.device_name == PAD.name
    assert status.mapping_count == 1

    controller.stop()
    controller.stop()
    assert not controller.started
    assert not controller.session.running
    assert not controller.dispatcher.running
    assert not controller.pump.running
    assert stream.closed
    assert controller.status().state is SessionState.IDLE
    assert notifier.statuses[0] is None
    assert PAD.name in notifier.statuses
    assert notifier.statuses[-1] is None
    assert ("Deckctl Started", "Monitoring for macro pad... (1 actions configured)") in notifier.notifications


def test_startup_validation_errors_are_kept(tmp_path: Path) -> None:
    path = _config(
        tmp_path,
        """
key_mappings:
  - key_code: 0x20
    action:
      name: Nowhere
      type: none
""",
    )
    controller = _controller(path, FakeBackend())
    controller.start()
    try:
        assert controller.validation_errors == ("Invalid key code: 0x20. Must be 0xF1 (241) - 0xF9 (249).",)
    finally:
        controller.stop()


def test_reload_with_new_filter_restarts_session(tmp_path: Path) -> None:
    path = _config(tmp_path)
    backend = FakeBackend(devices=[PAD, PICO])
    controller = _controller(path, backend)

    controller.start()
    try:
        assert wait_for(lambda: backend.opened == [PAD])
        path.write_text(NOTEPAD_CONFIG.replace("0xCAFE", "0x2E8A"), encoding="utf-8")
        assert controller.reload() is True
        assert wait_for(lambda: backend.opened == [PAD, PICO])
        assert wait_for(lambda: controller.status().device_name == PICO.name)
    finally:
        controller.stop()


def test_reload_of_mappings_only_keeps_session(tmp_path: Path) -> None:
    path = _config(tmp_path)
    backend = FakeBackend(devices=[PAD])
    controller = _controller(path, backend)

    controller.start()
    try:
        assert wait_for(lambda: controller.status().connection_state is ConnectionState.CONNECTED)
        path.write_text(NOTEPAD_CONFIG.replace("Notepad", "Editor"), encoding="utf-8")
        assert controller.reload() is True
        assert controller.config.current().mappings[0xF1].name == "Editor"
        assert backend.opened == [PAD]
    finally:
        controller.stop()


def test_matching_devices_uses_current_filter(tmp_path: Path) -> None:
    controller = _controller(_config(tmp_path), FakeBackend(devices=[PAD, PICO]))
    controller.config.load()
    assert controller.list_devices() == [PAD, PICO]
    assert controller.matching_devices() == [PAD]


def test_validate_while_running_leaves_live_configuration(tmp_path: Path) -> None:
    path = _config(tmp_path, NOTEPAD_CONFIG.replace("0xF1", "0xF5").replace("Notepad", "Mine"))
    backend = FakeBackend(devices=[PAD])
    controller = _controller(path, backend)

    controller.start()
    try:
        assert wait_for(lambda: backend.opened == [PAD])
        before = controller.config.current()
        path.write_text("key_mappings: [oops\n", encoding="utf-8")

        errors = controller.validate()
        assert errors
        assert "Invalid YAML" in errors[0]

        live = controller.config.current()
        assert live is before
        assert live.mappings[0xF5].name == "Mine"
        assert 0xF1 not in live.mappings
        assert backend.opened == [PAD]
    finally:
        controller.stop()
