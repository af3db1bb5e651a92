"""Session state owned by the controller, and the snapshot handed to renderers."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from gadget.bridge.devices import Device
from gadget.commands.screenrecord import ScreenRecording
from gadget.commands.settings import SettingInfo
from gadget.emulator import Avd
from gadget.registry import CatalogEntry
from gadget.tui.fuzzy import filter_commands

LIVE_OUTPUT_LINES = 5


class Mode(str, Enum):
    MENU = "menu"
    DEVICE_SELECT = "device_select"
    EMULATOR_SELECT = "emulator_select"
    TEXT_INPUT = "text_input"


class Activity(str, Enum):
    """Operations that can be in flight; each is cleared only by its own outcome."""
    SCREENSHOT = "screenshot"
    DAY_NIGHT = "day_night"
    RECORDING = "recording"
    CONNECTING_WIFI = "connecting_wifi"
    DISCONNECTING_WIFI = "disconnecting_wifi"
    PAIRING_WIFI = "pairing_wifi"
    LOADING_DEVICES = "loading_devices"
    LOADING_SETTING = "loading_setting"
    CHANGING_SETTING = "changing_setting"
    LAUNCHING_EMULATOR = "launching_emulator"
    CONFIGURING_EMULATOR = "configuring_emulator"


ACTIVITY_LABELS: dict[Activity, str] = {
    Activity.SCREENSHOT: "Screenshot",
    Activity.DAY_NIGHT: "Day-night screenshots",
    Activity.RECORDING: "Recording",
    Activity.CONNECTING_WIFI: "WiFi connect",
    Activity.DISCONNECTING_WIFI: "WiFi disconnect",
    Activity.PAIRING_WIFI: "WiFi pairing",
    Activity.LOADING_DEVICES: "Device refresh",
    Activity.LOADING_SETTING: "Setting lookup",
    Activity.CHANGING_SETTING: "Setting change",
    Activity.LAUNCHING_EMULATOR: "Emulator launch",
    Activity.CONFIGURING_EMULATOR: "Emulator configuration",
}


class TextAction(str, Enum):
    """What a submitted text prompt does."""
    WIFI_CONNECT = "wifi_connect"
    WIFI_DISCONNECT = "wifi_disconnect"
    WIFI_PAIR_ADDRESS = "wifi_pair_address"
    WIFI_PAIR_CODE = "wifi_pair_code"
    SETTING = "setting"


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class LogEntry:
    message: str
    severity: Severity
    timestamp: datetime
    details: tuple[str, ...] = ()


class LogHistory:
    """Bounded FIFO of user-facing log entries; the oldest is evicted when full."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ValueError("log capacity must be positive")
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def add(
        self,
        message: str,
        severity: Severity,
        details: tuple[str, ...] = (),
        timestamp: datetime | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            message=message.replace("\t", "  ").strip(),
            severity=severity,
            timestamp=timestamp or datetime.now(),
            details=tuple(details),
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(tuple(self._entries))


def clamp_index(index: int, length: int) -> int:
    """Keep a selection inside ``[0, length)``; out-of-range values reset to 0."""
    if index < 0 or index >= length:
        return 0
    return index


@dataclass
class SessionState:
    """Mutable aggregate; only the controller writes to it."""

    log: LogHistory
    mode: Mode = Mode.MENU
    devices: list[Device] = field(default_factory=list)
    avds: list[Avd] = field(default_factory=list)
    selected_index: int = 0
    selected_device_index: int = 0
    selected_emulator_index: int = 0
    search_query: str = ""
    filtered_commands: list[CatalogEntry] = field(default_factory=lambda: filter_commands(""))
    activities: dict[Activity, float] = field(default_factory=dict)
    pending_command: CatalogEntry | None = None
    pending_text_action: TextAction | None = None
    pending_text_context: str | None = None
    text_input: str = ""
    text_prompt: str = ""
    setting_device: Device | None = None
    setting_info: SettingInfo | None = None
    recording: ScreenRecording | None = None
    recording_stopping: bool = False
    device_error: str | None = None
    devices_stale: bool = False
    devices_loaded: bool = False
    # AVD list load in flight
    avds_loading: bool = False
    watcher_running: bool = False
    live_output: deque[str] = field(default_factory=lambda: deque(maxlen=LIVE_OUTPUT_LINES))
    quitting: bool = False

    def is_active(self, activity: Activity) -> bool:
        return activity in self.activities

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            mode=self.mode,
            devices=tuple(self.devices),
            avds=tuple(self.avds),
            selected_index=self.selected_index,
            selected_device_index=self.selected_device_index,
            selected_emulator_index=self.selected_emulator_index,
            search_query=self.search_query,
            filtered_commands=tuple(self.filtered_commands),
            log=self.log.entries(),
            activities=dict(self.activities),
            pending_command=self.pending_command,
            text_input=self.text_input,
            text_prompt=self.text_prompt,
            device_error=self.device_error,
            devices_loaded=self.devices_loaded,
            avds_loading=self.avds_loading,
            live_output=tuple(self.live_output),
            recording_stopping=self.recording_stopping,
            quitting=self.quitting,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of the session for the presentation layer."""

    mode: Mode
    devices: tuple[Device, ...]
    avds: tuple[Avd, ...]
    selected_index: int
    selected_device_index: int
    selected_emulator_index: int
    search_query: str
    filtered_commands: tuple[CatalogEntry, ...]
    log: tuple[LogEntry, ...]
    activities: dict[Activity, float]
    pending_command: CatalogEntry | None
    text_input: str
    text_prompt: str
    device_error: str | None
    devices_loaded: bool
    avds_loading: bool
    live_output: tuple[str, ...]
    recording_stopping: bool
    quitting: bool
