"""Exception hierarchy for device-bridge, capture, and session errors."""

from __future__ import annotations


class GadgetError(Exception):
    """Base exception for all gadget errors."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(message)


class BridgeError(GadgetError):
    """A device-bridge command failed to run or exited non-zero."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.command = command or []
        self.returncode = returncode
        super().__init__(message, detail=detail)


class BridgeTimeoutError(BridgeError):
    """A device-bridge command exceeded its timeout."""


class DeviceNotFoundError(GadgetError):
    """No matching device was found."""


class InvalidParameterError(GadgetError):
    """A user-supplied value failed validation."""


class CaptureError(GadgetError):
    """Output redirection could not be set up."""


class CaptureBusyError(CaptureError):
    """Another capture session already owns the process output streams."""


class WatcherError(GadgetError):
    """The device-change watcher could not be started."""


class EmulatorError(GadgetError):
    """AVD discovery or emulator launch failed."""


class RecordingError(GadgetError):
    """A screen recording could not be started, stopped, or saved."""
