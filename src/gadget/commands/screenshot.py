"""Screenshot capture, including day/night pairs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import click

from gadget.bridge.devices import Device
from gadget.bridge.executor import run_adb
from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

REMOTE_SCREENSHOT_PATH = "/sdcard/screenshot.png"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
UI_SETTLE_SECONDS = 2.0


@dataclass(frozen=True)
class DayNightPaths:
    day: Path
    night: Path


def _timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def screenshot_path(config: GadgetConfig, stamp: str, suffix: str = "") -> Path:
    """Local file name, e.g. ``android-img-2024-01-31_14-23-45-day.png``."""
    return config.media_path / f"android-img-{stamp}{suffix}.png"


def _capture_to(config: GadgetConfig, serial: str, local_path: Path, label: str = "") -> None:
    what = f"{label} screenshot" if label else "screenshot"
    try:
        run_adb(config, "shell", "screencap", REMOTE_SCREENSHOT_PATH, serial=serial)
    except BridgeError as exc:
        raise BridgeError(f"failed to take {what}: {exc}", command=exc.command) from exc
    try:
        run_adb(config, "pull", REMOTE_SCREENSHOT_PATH, str(local_path), serial=serial)
    except BridgeError as exc:
        raise BridgeError(f"failed to pull {what}: {exc}", command=exc.command) from exc


def _remove_remote(config: GadgetConfig, serial: str) -> None:
    run_adb(config, "shell", "rm", REMOTE_SCREENSHOT_PATH, serial=serial, check=False)


def take_screenshot(config: GadgetConfig, device: Device) -> Path:
    """Capture the screen of *device* into ``config.media_path``.

    Returns:
        Path of the saved PNG.

    Raises:
        BridgeError: screencap or pull failed.
    """
    local_path = screenshot_path(config, _timestamp())
    local_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("screenshot_start", serial=device.serial, path=str(local_path))

    _capture_to(config, device.serial, local_path)
    _remove_remote(config, device.serial)

    click.echo(f"Screenshot saved to: {local_path}")
    return local_path


def set_night_mode(config: GadgetConfig, device: Device, enabled: bool) -> None:
    run_adb(
        config, "shell", "cmd", "uimode", "night", "yes" if enabled else "no",
        serial=device.serial,
    )


def take_day_night_screenshots(
    config: GadgetConfig,
    device: Device,
    settle_seconds: float = UI_SETTLE_SECONDS,
) -> DayNightPaths:
    """Capture the screen in light mode, then dark mode, then restore light mode.

    Progress lines are echoed as each stage starts so a live view can
    follow along.

    Raises:
        BridgeError: A mode switch, capture, or pull failed.
    """
    stamp = _timestamp()
    paths = DayNightPaths(
        day=screenshot_path(config, stamp, "-day"),
        night=screenshot_path(config, stamp, "-night"),
    )
    paths.day.parent.mkdir(parents=True, exist_ok=True)
    serial = device.serial

    click.echo(f"Taking day and night screenshots of {serial}")
    logger.info("day_night_start", serial=serial)

    click.echo("Setting light mode...")
    try:
        set_night_mode(config, device, False)
    except BridgeError as exc:
        raise BridgeError(f"failed to set light mode: {exc}") from exc
    time.sleep(settle_seconds)

    click.echo("Taking day screenshot...")
    _capture_to(config, serial, paths.day, "day")
    click.echo(f"Day screenshot saved to: {paths.day}")

    click.echo("Setting dark mode...")
    try:
        set_night_mode(config, device, True)
    except BridgeError as exc:
        raise BridgeError(f"failed to set dark mode: {exc}") from exc
    time.sleep(settle_seconds)

    click.echo("Taking night screenshot...")
    _capture_to(config, serial, paths.night, "night")
    click.echo(f"Night screenshot saved to: {paths.night}")

    click.echo("Restoring light mode...")
    time.sleep(settle_seconds)
    try:
        set_night_mode(config, device, False)
    except BridgeError as exc:
        click.echo(f"Warning: failed to restore light mode: {exc}", err=True)
        logger.warning("light_mode_restore_failed", serial=serial, error=str(exc))

    _remove_remote(config, serial)
    return paths
