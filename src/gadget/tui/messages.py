"""Messages delivered to the session controller's inbox.

Everything the controller reacts to is one of these frozen records: a
keystroke, the outcome of a dispatched operation, or a refresh signal.
"""

from __future__ import annotations

from dataclasses import dataclass

from gadget.bridge.devices import Device
from gadget.commands.screenrecord import ScreenRecording
from gadget.commands.settings import SettingInfo, SettingType
from gadget.emulator import Avd


@dataclass(frozen=True)
class Message:
    """Base class for inbox messages."""


@dataclass(frozen=True)
class KeyPress(Message):
    """A key name (``"up"``, ``"enter"``, ``"ctrl+c"``) or one printable character."""
    key: str


@dataclass(frozen=True)
class DevicesLoaded(Message):
    devices: tuple[Device, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class AvdsLoaded(Message):
    avds: tuple[Avd, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class SettingLoaded(Message):
    setting_type: SettingType
    device: Device
    info: SettingInfo | None = None
    error: str | None = None


@dataclass(frozen=True)
class RecordingStarted(Message):
    recording: ScreenRecording | None = None
    error: str | None = None


@dataclass(frozen=True)
class LiveOutput(Message):
    """One line printed by a running operation, delivered as it happens."""
    line: str


@dataclass(frozen=True)
class RefreshRequested(Message):
    """Please re-enumerate devices; *reason* is for logs only."""
    reason: str
    identifiers: tuple[str, ...] = ()


@dataclass(frozen=True)
class WatcherStopped(Message):
    error: str | None = None


# --------------------------------------------------------------------------- #
# Outcome messages
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class OperationResult(Message):
    """Completion of one dispatched device operation."""
    success: bool
    message: str
    captured_lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScreenshotDone(OperationResult):
    pass


@dataclass(frozen=True)
class DayNightScreenshotDone(OperationResult):
    pass


@dataclass(frozen=True)
class ScreenRecordDone(OperationResult):
    pass


@dataclass(frozen=True)
class WifiConnectDone(OperationResult):
    pass


@dataclass(frozen=True)
class WifiDisconnectDone(OperationResult):
    pass


@dataclass(frozen=True)
class WifiPairDone(OperationResult):
    pass


@dataclass(frozen=True)
class EmulatorLaunchDone(OperationResult):
    pass


@dataclass(frozen=True)
class EmulatorConfigureDone(OperationResult):
    pass


@dataclass(frozen=True)
class SettingChanged(OperationResult):
    setting_type: SettingType | None = None
