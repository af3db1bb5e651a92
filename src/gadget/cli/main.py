"""Gadget CLI - interactive session and direct commands for Android devices."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager

import click

from gadget.config import GadgetConfig
from gadget.exceptions import GadgetError
from gadget.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@contextmanager
def _reported() -> Iterator[None]:
    """Turn library errors into a one-line ``Error:`` and exit status 1."""
    try:
        yield
    except GadgetError as exc:
        logger.debug("command_failed", error=str(exc), detail=exc.detail)
        message = str(exc)
        if exc.detail:
            message = f"{message}\n{exc.detail}"
        raise click.ClickException(message) from exc


def _config(ctx: click.Context) -> GadgetConfig:
    return ctx.obj["config"]


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_output: bool) -> None:
    """Gadget - Android development toolkit.

    Without a sub-command the interactive session starts.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    config = GadgetConfig.from_env()
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        from gadget.tui.app import run_interactive

        with _reported():
            config.check_adb()
        run_interactive(config, debug=debug)
        return

    setup_logging(level="DEBUG" if debug else "INFO", json_output=json_output)
    with _reported():
        config.check_adb()


@cli.command()
@click.pass_context
def devices(ctx: click.Context) -> None:
    """List connected devices with their details."""
    from gadget.bridge.devices import list_devices

    with _reported():
        found = list_devices(_config(ctx), extended=True)

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([d.model_dump() for d in found], indent=2))
        return
    if not found:
        click.echo("No devices connected.")
        return
    click.echo(f"Found {len(found)} device(s):")
    for device in found:
        click.echo(f"  {device.display_name()}")
        info = device.extended_info()
        if info:
            click.echo(f"    {info}")


@cli.command()
@click.argument("serial", required=False)
@click.pass_context
def screenshot(ctx: click.Context, serial: str | None) -> None:
    """Take a screenshot and save it to the media directory."""
    from gadget.bridge.devices import select_device
    from gadget.commands.screenshot import take_screenshot

    config = _config(ctx)
    with _reported():
        device = select_device(config, serial)
        take_screenshot(config, device)


@cli.command("screenshot-day-night")
@click.argument("serial", required=False)
@click.pass_context
def screenshot_day_night(ctx: click.Context, serial: str | None) -> None:
    """Take one screenshot in light mode and one in dark mode."""
    from gadget.bridge.devices import select_device
    from gadget.commands.screenshot import take_day_night_screenshots

    config = _config(ctx)
    with _reported():
        device = select_device(config, serial)
        take_day_night_screenshots(config, device)


@cli.command("screen-record")
@click.argument("serial", required=False)
@click.pass_context
def screen_record(ctx: click.Context, serial: str | None) -> None:
    """Record the screen until Ctrl+C, then save the video."""
    from gadget.bridge.devices import select_device
    from gadget.commands.screenrecord import start_screen_record

    config = _config(ctx)
    with _reported():
        device = select_device(config, serial)
        recording = start_screen_record(config, device)

    click.echo(f"Recording screen on {device.serial}. Press Ctrl+C to stop...")
    try:
        recording.process.wait()
    except KeyboardInterrupt:
        click.echo("\nStopping recording...")

    with _reported():
        recording.stop_and_save()


def _change_setting(ctx: click.Context, setting: str, value: str, serial: str | None) -> None:
    from gadget.bridge.devices import select_device
    from gadget.commands.settings import SettingType, get_setting_handler

    config = _config(ctx)
    handler = get_setting_handler(SettingType(setting))
    with _reported():
        handler.validate(value)
        device = select_device(config, serial)
        handler.set_value(config, device, value)


@cli.command("change-dpi")
@click.argument("value")
@click.option("--device", "serial", help="Device serial (required with several devices)")
@click.pass_context
def change_dpi(ctx: click.Context, value: str, serial: str | None) -> None:
    """Set the display density, e.g. 420."""
    _change_setting(ctx, "dpi", value, serial)


@cli.command("change-font-size")
@click.argument("value")
@click.option("--device", "serial", help="Device serial (required with several devices)")
@click.pass_context
def change_font_size(ctx: click.Context, value: str, serial: str | None) -> None:
    """Set the font scale, e.g. 1.2."""
    _change_setting(ctx, "fontsize", value, serial)


@cli.command("change-screen-size")
@click.argument("value")
@click.option("--device", "serial", help="Device serial (required with several devices)")
@click.pass_context
def change_screen_size(ctx: click.Context, value: str, serial: str | None) -> None:
    """Set the screen size as WIDTHxHEIGHT, e.g. 1080x1920."""
    _change_setting(ctx, "screensize", value, serial)


@cli.command("launch-emulator")
@click.argument("avd_name", required=False)
@click.pass_context
def launch_emulator(ctx: click.Context, avd_name: str | None) -> None:
    """Start an emulator by AVD name; without a name, list the AVDs."""
    from gadget.emulator import find_avd, launch_emulator as launch, list_avds

    config = _config(ctx)
    with _reported():
        if avd_name is None:
            avds = list_avds(config)
            if ctx.obj.get("json_output"):
                click.echo(json.dumps([a.model_dump(mode="json") for a in avds], indent=2))
                return
            if not avds:
                click.echo("No AVDs found.")
                return
            click.echo("Available AVDs:")
            for avd in avds:
                click.echo(f"  {avd.name}  {avd}")
            return
        avd = find_avd(config, avd_name)
        launch(config, avd)


@cli.command("pair-wifi")
@click.argument("address")
@click.argument("code")
@click.pass_context
def pair_wifi(ctx: click.Context, address: str, code: str) -> None:
    """Pair with a device using the address and code shown on the phone."""
    from gadget.commands import wifi

    with _reported():
        wifi.pair(_config(ctx), address, code)


@cli.command("connect-wifi")
@click.argument("address")
@click.pass_context
def connect_wifi(ctx: click.Context, address: str) -> None:
    """Connect to a device over WiFi (IP or IP:port)."""
    from gadget.commands import wifi

    with _reported():
        wifi.connect(_config(ctx), address)


@cli.command("disconnect-wifi")
@click.argument("address")
@click.pass_context
def disconnect_wifi(ctx: click.Context, address: str) -> None:
    """Disconnect a WiFi device (IP or IP:port)."""
    from gadget.commands import wifi

    with _reported():
        wifi.disconnect(_config(ctx), address)


if __name__ == "__main__":
    cli()
