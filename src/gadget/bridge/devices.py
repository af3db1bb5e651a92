"""Connected device enumeration and descriptors."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from gadget.bridge.executor import run_adb
from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError, DeviceNotFoundError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

_ABI_NAMES = {
    "arm64-v8a": "ARM64",
    "armeabi-v7a": "ARM",
    "armeabi": "ARM",
    "x86_64": "x86_64",
    "x86": "x86",
}


class ConnectionType(str, Enum):
    """How a device is attached to the bridge."""
    PHYSICAL = "physical"
    EMULATOR = "emulator"
    WIFI = "wifi"


class Device(BaseModel):
    """One line of ``adb devices -l`` plus lazily loaded details."""

    serial: str
    status: str
    product: str = ""
    model: str = ""
    device_type: str = ""
    transport_id: str = ""
    battery_level: int | None = None
    android_version: str = ""
    api_level: int | None = None
    screen_resolution: str = ""
    cpu_abi: str = ""
    ip_address: str = ""

    @property
    def identifier(self) -> str:
        return self.serial

    @property
    def connection_type(self) -> ConnectionType:
        if self.serial.startswith("emulator-"):
            return ConnectionType.EMULATOR
        if ":" in self.serial:
            return ConnectionType.WIFI
        return ConnectionType.PHYSICAL

    def display_name(self) -> str:
        if self.connection_type is ConnectionType.EMULATOR:
            details = []
            if self.model and "sdk_gphone" not in self.model:
                details.append(self.model)
            elif self.product:
                name = self.product
                if name.startswith("sdk_"):
                    name = name[len("sdk_"):].replace("_", " ")
                details.append(name)
            details.append("Emulator")
            return f"{self.serial} ({' • '.join(details)})"
        if self.model and self.product:
            return f"{self.serial} ({self.model} - {self.product})"
        return f"{self.serial} ({self.status})"

    def extended_info(self) -> str:
        """One-line summary of the details loaded by :func:`load_extended_info`."""
        info: list[str] = []
        if self.android_version and self.api_level:
            info.append(f"Android {self.android_version} (API {self.api_level})")
        elif self.android_version:
            info.append(f"Android {self.android_version}")
        elif self.api_level:
            info.append(f"API {self.api_level}")
        if self.cpu_abi:
            info.append(_ABI_NAMES.get(self.cpu_abi, self.cpu_abi))
        if self.screen_resolution:
            info.append(self.screen_resolution)
        if self.ip_address:
            info.append(self.ip_address)
        if self.battery_level is not None:
            info.append(f"{self.battery_level}%")
        return " • ".join(info)


def parse_device_line(line: str) -> Device | None:
    """Parse one ``adb devices -l`` line.

    Example: ``emulator-5554  device product:sdk_gphone64_arm64 model:Pixel_7``
    """
    parts = line.split()
    if len(parts) < 2:
        return None

    fields = {"serial": parts[0], "status": parts[1]}
    for token in parts[2:]:
        key, sep, value = token.partition(":")
        if not sep:
            continue
        if key == "model":
            fields["model"] = value
        elif key == "product":
            fields["product"] = value
        elif key == "device":
            fields["device_type"] = value
        elif key == "transport_id":
            fields["transport_id"] = value
    return Device(**fields)


def parse_devices_output(output: str) -> list[Device]:
    lines = output.splitlines()
    devices = []
    # First line is the "List of devices attached" header
    for line in lines[1:]:
        line = line.strip()
        if not line or line.startswith("*"):
            continue
        device = parse_device_line(line)
        if device is not None:
            devices.append(device)
    return devices


def list_devices(config: GadgetConfig, extended: bool = False) -> list[Device]:
    """Enumerate devices known to the bridge.

    Raises:
        BridgeError: If ``adb devices`` fails.
    """
    output = run_adb(config, "devices", "-l")
    devices = parse_devices_output(output)
    if extended:
        devices = [load_extended_info(config, d) for d in devices]
    logger.debug("devices_listed", count=len(devices))
    return devices


def _probe(config: GadgetConfig, serial: str, *args: str) -> str | None:
    try:
        return run_adb(config, "shell", *args, serial=serial).strip()
    except BridgeError:
        logger.debug("device_probe_failed", serial=serial, probe=" ".join(args))
        return None


def load_extended_info(config: GadgetConfig, device: Device) -> Device:
    """Return a copy of *device* with battery, version, screen, ABI and IP filled in.

    Devices that are not in the ``device`` state are returned unchanged.
    Each probe is independent; a failed probe leaves its field unknown.
    """
    if device.status != "device":
        return device

    serial = device.serial
    updates: dict = {}

    battery = _probe(config, serial, "dumpsys", "battery")
    if battery:
        for line in battery.splitlines():
            key, _, value = line.strip().partition(":")
            if key == "level" and value.strip().isdigit():
                updates["battery_level"] = int(value.strip())
                break

    version = _probe(config, serial, "getprop", "ro.build.version.release")
    if version:
        updates["android_version"] = version

    api = _probe(config, serial, "getprop", "ro.build.version.sdk")
    if api and api.isdigit():
        updates["api_level"] = int(api)

    size = _probe(config, serial, "wm", "size")
    if size:
        for line in size.splitlines():
            if "Physical size:" in line:
                updates["screen_resolution"] = line.split(":", 1)[1].strip()
                break

    abi = _probe(config, serial, "getprop", "ro.product.cpu.abi")
    if abi:
        updates["cpu_abi"] = abi

    ip = _load_ip_address(config, device)
    if ip:
        updates["ip_address"] = ip

    return device.model_copy(update=updates)


def _load_ip_address(config: GadgetConfig, device: Device) -> str:
    output = _probe(config, device.serial, "ip", "addr", "show", "wlan0")
    if output:
        for line in output.splitlines():
            parts = line.split()
            if "inet" in parts and "127.0.0.1" not in line:
                idx = parts.index("inet")
                if idx + 1 < len(parts):
                    return parts[idx + 1].split("/", 1)[0]

    # Older devices only ship ifconfig
    output = _probe(config, device.serial, "ifconfig", "wlan0")
    if output:
        for line in output.splitlines():
            marker = line.find("inet addr:")
            if marker != -1:
                return line[marker + len("inet addr:"):].split()[0]

    if device.connection_type is ConnectionType.WIFI:
        return device.serial.split(":", 1)[0]
    return ""


def select_device(config: GadgetConfig, serial: str | None = None) -> Device:
    """Pick the target device for a direct command.

    Raises:
        DeviceNotFoundError: No devices, unknown serial, or several devices
            connected without an explicit serial.
    """
    devices = list_devices(config)
    if not devices:
        raise DeviceNotFoundError("no devices connected")

    if serial:
        for device in devices:
            if device.serial == serial:
                return device
        raise DeviceNotFoundError(f"device with serial {serial} not found")

    if len(devices) == 1:
        return devices[0]

    listing = "\n".join(f"  {d.display_name()}" for d in devices)
    raise DeviceNotFoundError(
        "multiple devices connected, please specify --device",
        detail=listing,
    )
