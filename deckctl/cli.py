"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path

import typer

from deckctl.core.device_match import describe_device, matches
from deckctl.core.errors import DeckctlError
from deckctl.core.lifecycle import LifecycleController
from deckctl.core.model import button_number
from deckctl.core.report import decode

app = typer.Typer(help="Bind macro pad buttons to applications, URLs and scripts")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.yaml")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _build_service(config: Path | None) -> LifecycleController:
    return LifecycleController(config_path=config)


def _install_signal_handlers(stop: threading.Event, reload_requested: threading.Event) -> None:
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, lambda *_: reload_requested.set())


@app.command("run")
def run_service(
    config: Path | None = ConfigOption,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run the macro pad service in the foreground until interrupted.

    Send SIGHUP to reload the configuration file.
    """
    _configure_logging(verbose)
    try:
        service = _build_service(config)
        stop = threading.Event()
        reload_requested = threading.Event()
        _install_signal_handlers(stop, reload_requested)

        service.start()
        if service.config.current().verbose_logging:
            logging.getLogger().setLevel(logging.DEBUG)
        for warning in service.validation_errors:
            typer.echo(f"Warning: {warning}", err=True)

        try:
            while not stop.wait(0.5):
                if reload_requested.is_set():
                    reload_requested.clear()
                    service.reload()
        finally:
            service.stop()
    except DeckctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("devices")
def list_devices(config: Path | None = ConfigOption) -> None:
    """List attached HID devices and whether they match the configured filter."""
    try:
        service = _build_service(config)
        service.config.load()
        device_filter = service.config.current().device_filter
        devices = service.list_devices()
        if not devices:
            typer.echo("No HID devices found")
            return

        typer.echo(f"Filter: {device_filter.describe()}")
        for device in devices:
            matched = "match" if matches(device, device_filter) else "<no-match>"
            typer.echo(f"{describe_device(device)} -> {matched}")
    except DeckctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("validate")
def validate_config(config: Path | None = ConfigOption) -> None:
    """Validate the configuration and the actions it binds."""
    try:
        service = _build_service(config)
        snapshot, errors = service.check()
        if errors:
            typer.echo(f"Configuration has {len(errors)} error(s):", err=True)
            for error in errors:
                typer.echo(f"  - {error}", err=True)
            raise typer.Exit(code=1)

        typer.echo(f"Configuration OK: {len(snapshot.mappings)} key mappings")
        for key_code, action in sorted(snapshot.mappings.items()):
            state = "" if action.enabled else " (disabled)"
            typer.echo(f"  0x{key_code:02X} button {button_number(key_code)}: {action}{state}")
    except DeckctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("decode")
def decode_report(report: str = typer.Argument(..., help="Raw report as hex, e.g. '02 f3 ff'")) -> None:
    """Decode one raw HID report the way the service would."""
    try:
        raw = bytes.fromhex(report)
    except ValueError:
        typer.echo(f"Error: '{report}' is not valid hex", err=True)
        raise typer.Exit(code=1) from None

    code = decode(raw)
    if code is None:
        typer.echo("No key event")
        return
    typer.echo(f"Key code 0x{code:02X} (button {button_number(code)})")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
