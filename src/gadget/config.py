"""Runtime configuration resolved from the environment."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

from gadget.exceptions import BridgeError

DEFAULT_WIFI_PORT = 4444


def _default_android_home() -> Path:
    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        value = os.environ.get(var)
        if value:
            return Path(value).expanduser()
    # Android Studio default on macOS
    return Path.home() / "Library" / "Android" / "sdk"


def _env_path(var: str, default: Path) -> Path:
    value = os.environ.get(var)
    return Path(value).expanduser() if value else default


class GadgetConfig(BaseModel):
    """Paths and timings shared by the CLI, device operations, and the session."""

    android_home: Path
    media_path: Path = Field(default_factory=lambda: Path.home() / "Downloads")
    avd_home: Path = Field(default_factory=lambda: Path.home() / ".android" / "avd")
    log_file: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "gadget.log")
    adb_static_port: int = Field(default=DEFAULT_WIFI_PORT, ge=1, le=65535)
    log_capacity: int = Field(default=5, gt=0)
    refresh_interval_s: float = Field(default=10.0, gt=0)
    settle_delay_s: float = Field(default=1.0, ge=0)
    emulator_refresh_delay_s: float = Field(default=30.0, ge=0)
    watcher_send_timeout_s: float = Field(default=0.1, ge=0)
    command_timeout_s: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls) -> GadgetConfig:
        """Build a config from ANDROID_HOME and the GADGET_* variables."""
        home = Path.home()
        return cls(
            android_home=_default_android_home(),
            media_path=_env_path("GADGET_MEDIA_PATH", home / "Downloads"),
            avd_home=_env_path("ANDROID_AVD_HOME", home / ".android" / "avd"),
            log_file=_env_path(
                "GADGET_LOG_FILE", Path(tempfile.gettempdir()) / "gadget.log"
            ),
        )

    @property
    def adb_path(self) -> Path:
        return self.android_home / "platform-tools" / "adb"

    @property
    def emulator_path(self) -> Path:
        return self.android_home / "emulator" / "emulator"

    def check_adb(self) -> None:
        """Raise BridgeError if the adb binary is missing."""
        if not self.adb_path.exists():
            raise BridgeError(
                f"ADB not found at {self.adb_path}",
                detail=f"Check ANDROID_HOME (currently {self.android_home})",
            )
