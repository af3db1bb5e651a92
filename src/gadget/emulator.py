"""Android Virtual Device discovery, launch, and configuration."""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path

import click
from pydantic import BaseModel

from gadget.config import GadgetConfig
from gadget.exceptions import EmulatorError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

DNS_SERVER = "8.8.8.8"


class Avd(BaseModel):
    """An AVD discovered from ``<avd_home>/<name>.ini``."""

    name: str
    target: str = ""
    path: Path
    display_name: str = ""
    architecture: str = ""
    resolution: str = ""
    api_level: str = ""

    @property
    def identifier(self) -> str:
        return self.name

    @property
    def config_path(self) -> Path:
        return self.path / "config.ini"

    def __str__(self) -> str:
        name = self.display_name or self.name
        details = []
        if self.api_level:
            details.append(f"API {self.api_level}")
        if self.architecture:
            details.append(self.architecture)
        if self.resolution:
            details.append(self.resolution)
        if details:
            return f"{name} ({' • '.join(details)})"
        return name


def _read_ini_pointer(ini_path: Path) -> tuple[str, str]:
    """Return the ``target=`` and ``path=`` values of an AVD pointer file."""
    target = ""
    path = ""
    try:
        text = ini_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return target, path
    for line in text.splitlines():
        if line.startswith("target="):
            target = line[len("target="):]
        elif line.startswith("path="):
            path = line[len("path="):]
    return target, path


def parse_avd_config(text: str) -> dict[str, str]:
    """Pull display details out of an AVD ``config.ini``."""
    details: dict[str, str] = {}
    width = height = ""
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(" = ")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()

        if key == "avd.ini.displayname":
            details["display_name"] = value
        elif key in ("abi.type", "hw.cpu.arch"):
            details.setdefault("architecture", value)
        elif key == "hw.lcd.width":
            width = value
        elif key == "hw.lcd.height":
            height = value

        if key.startswith("image.sysdir") and "android-" in value:
            for part in value.split("/"):
                if part.startswith("android-"):
                    details["api_level"] = part[len("android-"):]
                    break

    if width and height:
        details["resolution"] = f"{width}x{height}"
    return details


def list_avds(config: GadgetConfig) -> list[Avd]:
    """Discover AVDs by reading ``*.ini`` pointer files under ``avd_home``.

    Raises:
        EmulatorError: The AVD directory cannot be read.
    """
    avd_home = config.avd_home
    try:
        entries = sorted(p for p in avd_home.iterdir() if p.suffix == ".ini")
    except OSError as exc:
        raise EmulatorError(f"failed to read AVD directory {avd_home}: {exc}") from exc

    avds = []
    for ini_path in entries:
        name = ini_path.stem
        target, raw_path = _read_ini_pointer(ini_path)
        avd_path = Path(raw_path) if raw_path else avd_home / f"{name}.avd"

        details: dict[str, str] = {}
        config_ini = avd_path / "config.ini"
        if config_ini.is_file():
            try:
                details = parse_avd_config(
                    config_ini.read_text(encoding="utf-8", errors="replace")
                )
            except OSError:
                logger.debug("avd_config_unreadable", avd=name, path=str(config_ini))

        avds.append(Avd(name=name, target=target, path=avd_path, **details))

    logger.debug("avds_listed", count=len(avds))
    return avds


def find_avd(config: GadgetConfig, name: str) -> Avd:
    """Look up an AVD by name, falling back to its display name.

    Raises:
        EmulatorError: No AVD matches; the detail lists the available names.
    """
    avds = list_avds(config)
    for avd in avds:
        if avd.name == name:
            return avd
    for avd in avds:
        if avd.display_name == name:
            return avd
    available = "\n".join(f"  {avd.name}" for avd in avds) or "  (none)"
    raise EmulatorError(f"AVD not found: {name}", detail=f"Available AVDs:\n{available}")


def launch_emulator(config: GadgetConfig, avd: Avd) -> int:
    """Start the emulator for *avd* in the background and return its PID.

    Raises:
        EmulatorError: The emulator binary could not be launched.
    """
    cmd = [str(config.emulator_path), "-avd", avd.name, "-dns-server", DNS_SERVER]
    logger.info("emulator_launch", avd=avd.name, cmd=" ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise EmulatorError(f"failed to launch emulator: {exc}") from exc

    click.echo(f"Launched emulator: {avd.name} (PID: {proc.pid})")
    return proc.pid


def editor_command(config_path: Path) -> list[str]:
    """Build the ``$EDITOR`` invocation for an AVD config file."""
    editor = os.environ.get("EDITOR") or "vi"
    return [*shlex.split(editor), str(config_path)]


def configure_emulator(avd: Avd) -> None:
    """Open the AVD's ``config.ini`` in ``$EDITOR`` and wait for it to exit.

    The editor owns the terminal, so the caller must release it first.

    Raises:
        EmulatorError: The config file is missing or the editor failed.
    """
    config_path = avd.config_path
    if not config_path.is_file():
        raise EmulatorError(f"config file not found: {config_path}")

    cmd = editor_command(config_path)
    logger.info("emulator_configure", avd=avd.name, cmd=" ".join(cmd))
    try:
        result = subprocess.run(cmd)
    except OSError as exc:
        raise EmulatorError(f"failed to start editor: {exc}") from exc
    if result.returncode != 0:
        raise EmulatorError(f"editor exited with code {result.returncode}")
