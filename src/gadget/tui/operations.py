"""Task factories binding each catalog action to its device operation."""

from __future__ import annotations

from functools import partial
from pathlib import Path

from gadget import emulator
from gadget.bridge.devices import Device, list_devices
from gadget.commands import wifi
from gadget.commands.screenrecord import ScreenRecording, start_screen_record
from gadget.commands.screenshot import take_day_night_screenshots, take_screenshot
from gadget.commands.settings import SettingType, get_setting_handler
from gadget.config import GadgetConfig
from gadget.emulator import Avd
from gadget.tui.dispatch import Emit, Task, operation_task
from gadget.tui.messages import (
    AvdsLoaded,
    DayNightScreenshotDone,
    DevicesLoaded,
    EmulatorConfigureDone,
    EmulatorLaunchDone,
    RecordingStarted,
    ScreenRecordDone,
    ScreenshotDone,
    SettingChanged,
    SettingLoaded,
    WifiConnectDone,
    WifiDisconnectDone,
    WifiPairDone,
)


def shorten_home(path: Path | str) -> str:
    """Replace the home directory prefix with ``~``."""
    text = str(path)
    home = str(Path.home())
    if home and text.startswith(home):
        return "~" + text[len(home):]
    return text


# --------------------------------------------------------------------------- #
# Enumeration
# --------------------------------------------------------------------------- #


def load_devices(config: GadgetConfig) -> Task:
    def run(emit: Emit) -> DevicesLoaded:
        return DevicesLoaded(devices=tuple(list_devices(config, extended=True)))

    return Task(
        name="load-devices",
        run=run,
        on_error=lambda exc: DevicesLoaded(error=str(exc)),
    )


def load_avds(config: GadgetConfig) -> Task:
    def run(emit: Emit) -> AvdsLoaded:
        return AvdsLoaded(avds=tuple(emulator.list_avds(config)))

    return Task(name="load-avds", run=run, on_error=lambda exc: AvdsLoaded(error=str(exc)))


# --------------------------------------------------------------------------- #
# Media
# --------------------------------------------------------------------------- #


def take_screenshot_task(config: GadgetConfig, device: Device) -> Task:
    def operation() -> str:
        path = take_screenshot(config, device)
        return f"Screenshot captured on {device.serial}\n{shorten_home(path)}"

    return operation_task("screenshot", operation, ScreenshotDone)


def day_night_task(config: GadgetConfig, device: Device) -> Task:
    def operation() -> str:
        paths = take_day_night_screenshots(config, device)
        return (
            f"Day-night screenshots captured on {device.serial}\n"
            f"{shorten_home(paths.day)}\n{shorten_home(paths.night)}"
        )

    return operation_task("day-night", operation, DayNightScreenshotDone, stream=True)


def start_recording_task(config: GadgetConfig, device: Device) -> Task:
    def run(emit: Emit) -> RecordingStarted:
        return RecordingStarted(recording=start_screen_record(config, device))

    return Task(
        name="start-recording",
        run=run,
        on_error=lambda exc: RecordingStarted(error=str(exc)),
    )


def stop_recording_task(recording: ScreenRecording) -> Task:
    def operation() -> str:
        path = recording.stop_and_save()
        return f"Screen recording saved on {recording.serial}\n{shorten_home(path)}"

    return operation_task("stop-recording", operation, ScreenRecordDone)


# --------------------------------------------------------------------------- #
# Settings
# --------------------------------------------------------------------------- #


def load_setting_task(config: GadgetConfig, device: Device, setting_type: SettingType) -> Task:
    def run(emit: Emit) -> SettingLoaded:
        info = get_setting_handler(setting_type).get_info(config, device)
        return SettingLoaded(setting_type=setting_type, device=device, info=info)

    return Task(
        name=f"load-setting-{setting_type.value}",
        run=run,
        on_error=lambda exc: SettingLoaded(
            setting_type=setting_type, device=device, error=str(exc)
        ),
    )


def change_setting_task(
    config: GadgetConfig,
    device: Device,
    setting_type: SettingType,
    value: str,
) -> Task:
    handler = get_setting_handler(setting_type)

    def operation() -> str:
        written = handler.set_value(config, device, value)
        return f"{handler.display_name} changed to {written} on {device.serial}"

    return operation_task(
        f"change-setting-{setting_type.value}",
        operation,
        partial(SettingChanged, setting_type=setting_type),
    )


# --------------------------------------------------------------------------- #
# WiFi
# --------------------------------------------------------------------------- #


def connect_wifi_task(config: GadgetConfig, address: str) -> Task:
    def operation() -> str:
        connected = wifi.connect(config, address)
        return f"WiFi device connected: {connected}"

    return operation_task("wifi-connect", operation, WifiConnectDone)


def disconnect_wifi_task(config: GadgetConfig, address: str) -> Task:
    def operation() -> str:
        target = wifi.disconnect(config, address)
        return f"WiFi device disconnected: {target}"

    return operation_task("wifi-disconnect", operation, WifiDisconnectDone)


def pair_wifi_task(config: GadgetConfig, address: str, code: str) -> Task:
    def operation() -> str:
        target = wifi.pair(config, address, code)
        return (
            f"WiFi device paired: {target}\n"
            "Use Connect WiFi device with the address shown on the phone"
        )

    return operation_task("wifi-pair", operation, WifiPairDone)


# --------------------------------------------------------------------------- #
# Emulators
# --------------------------------------------------------------------------- #


def launch_emulator_task(config: GadgetConfig, avd: Avd) -> Task:
    def operation() -> str:
        emulator.launch_emulator(config, avd)
        return f"Launched emulator: {avd.name} (may take a moment to appear)"

    return operation_task("launch-emulator", operation, EmulatorLaunchDone)


def configure_emulator_task(avd: Avd) -> Task:
    """Open the AVD config in an editor; runs in the foreground."""

    def run(emit: Emit) -> EmulatorConfigureDone:
        emulator.configure_emulator(avd)
        return EmulatorConfigureDone(True, f"Emulator configuration updated: {avd.name}")

    return Task(
        name="configure-emulator",
        run=run,
        on_error=lambda exc: EmulatorConfigureDone(False, str(exc)),
        foreground=True,
    )
