"""Display settings: DPI, font scale, and screen size."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from enum import Enum

import click

from gadget.bridge.devices import Device
from gadget.bridge.executor import run_adb
from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError, InvalidParameterError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)


class SettingType(str, Enum):
    DPI = "dpi"
    FONT_SIZE = "fontsize"
    SCREEN_SIZE = "screensize"


@dataclass(frozen=True)
class SettingInfo:
    """Current and default value of a setting, ready for a text prompt."""
    type: SettingType
    display_name: str
    current: str
    default: str
    input_prompt: str


def _field_after(output: str, label: str) -> str | None:
    """Return the first token after ``label`` on any line of *output*."""
    for line in output.splitlines():
        if label in line:
            parts = line.split()
            if len(parts) >= 3:
                return parts[2]
    return None


class SettingHandler(abc.ABC):
    """Read, validate, and write one device setting."""

    setting_type: SettingType
    display_name: str
    input_prompt: str

    @abc.abstractmethod
    def get_info(self, config: GadgetConfig, device: Device) -> SettingInfo:
        """Query the device for the current value.

        Raises:
            BridgeError: The query failed or its output was unparseable.
        """

    @abc.abstractmethod
    def validate(self, value: str) -> str:
        """Return the normalized value or raise InvalidParameterError."""

    @abc.abstractmethod
    def _apply(self, config: GadgetConfig, device: Device, value: str) -> None:
        """Write an already validated value."""

    def set_value(self, config: GadgetConfig, device: Device, value: str) -> str:
        """Validate and write *value*; returns the normalized value written."""
        normalized = self.validate(value)
        self._apply(config, device, normalized)
        logger.info(
            "setting_changed",
            setting=self.setting_type.value,
            value=normalized,
            serial=device.serial,
        )
        click.echo(f"{self.display_name} changed to {normalized} on device {device.serial}")
        return normalized

    def _info(self, current: str, default: str) -> SettingInfo:
        return SettingInfo(
            type=self.setting_type,
            display_name=self.display_name,
            current=current,
            default=default,
            input_prompt=self.input_prompt,
        )


class DpiHandler(SettingHandler):
    setting_type = SettingType.DPI
    display_name = "DPI"
    input_prompt = "Enter new DPI:"

    def get_info(self, config: GadgetConfig, device: Device) -> SettingInfo:
        try:
            output = run_adb(config, "shell", "wm", "density", serial=device.serial)
        except BridgeError as exc:
            raise BridgeError(f"failed to get current DPI: {exc}") from exc

        physical = _as_int(_field_after(output, "Physical density:"))
        override = _as_int(_field_after(output, "Override density:"))
        if not physical:
            raise BridgeError(f"could not parse DPI from output: {output.strip()}")
        current = override or physical
        return self._info(str(current), str(physical))

    def validate(self, value: str) -> str:
        value = value.strip()
        try:
            dpi = int(value)
        except ValueError:
            raise InvalidParameterError(f"invalid DPI value: {value}") from None
        if dpi <= 0:
            raise InvalidParameterError(f"invalid DPI value: {value}")
        return str(dpi)

    def _apply(self, config: GadgetConfig, device: Device, value: str) -> None:
        try:
            run_adb(config, "shell", "wm", "density", value, serial=device.serial)
        except BridgeError as exc:
            raise BridgeError(f"failed to set DPI to {value}: {exc}") from exc


class FontSizeHandler(SettingHandler):
    setting_type = SettingType.FONT_SIZE
    display_name = "Font Size"
    input_prompt = "Enter new font size (e.g., 1.2):"

    def get_info(self, config: GadgetConfig, device: Device) -> SettingInfo:
        try:
            output = run_adb(
                config, "shell", "settings", "get", "system", "font_scale",
                serial=device.serial,
            )
        except BridgeError as exc:
            raise BridgeError(f"failed to get current font size: {exc}") from exc

        raw = output.strip()
        if raw in ("", "null"):
            current = 1.0
        else:
            try:
                current = float(raw)
            except ValueError:
                raise BridgeError(f"could not parse font size from output: {raw}") from None
        return self._info(f"{current:.1f}", "1.0")

    def validate(self, value: str) -> str:
        value = value.strip()
        try:
            scale = float(value)
        except ValueError:
            raise InvalidParameterError(f"invalid font size value: {value}") from None
        if scale <= 0:
            raise InvalidParameterError(f"invalid font size value: {value}")
        return f"{scale:.1f}"

    def _apply(self, config: GadgetConfig, device: Device, value: str) -> None:
        try:
            run_adb(
                config, "shell", "settings", "put", "system", "font_scale", value,
                serial=device.serial,
            )
        except BridgeError as exc:
            raise BridgeError(f"failed to set font size to {value}: {exc}") from exc


class ScreenSizeHandler(SettingHandler):
    setting_type = SettingType.SCREEN_SIZE
    display_name = "Screen Size"
    input_prompt = "Enter new screen size (e.g., 1080x1920):"

    def get_info(self, config: GadgetConfig, device: Device) -> SettingInfo:
        try:
            output = run_adb(config, "shell", "wm", "size", serial=device.serial)
        except BridgeError as exc:
            raise BridgeError(f"failed to get current screen size: {exc}") from exc

        physical = _field_after(output, "Physical size:")
        override = _field_after(output, "Override size:")
        if not physical:
            raise BridgeError(f"could not parse screen size from output: {output.strip()}")
        return self._info(override or physical, physical)

    def validate(self, value: str) -> str:
        value = value.strip()
        parts = value.split("x")
        if len(parts) != 2:
            raise InvalidParameterError(
                f"invalid screen size format: {value} (expected format: 1080x1920)"
            )
        if not all(part.isdigit() for part in parts):
            raise InvalidParameterError(
                f"invalid screen size format: {value} "
                "(both width and height must be numbers)"
            )
        return value

    def _apply(self, config: GadgetConfig, device: Device, value: str) -> None:
        try:
            run_adb(config, "shell", "wm", "size", value, serial=device.serial)
        except BridgeError as exc:
            raise BridgeError(f"failed to set screen size to {value}: {exc}") from exc


def _as_int(value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


_HANDLERS: dict[SettingType, SettingHandler] = {
    SettingType.DPI: DpiHandler(),
    SettingType.FONT_SIZE: FontSizeHandler(),
    SettingType.SCREEN_SIZE: ScreenSizeHandler(),
}


def get_setting_handler(setting_type: SettingType) -> SettingHandler:
    return _HANDLERS[setting_type]
