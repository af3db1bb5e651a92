"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

import pytest

from gadget.bridge import executor
from gadget.bridge.devices import Device
from gadget.config import GadgetConfig
from gadget.utils.logging import setup_logging


class FakeAdb:
    """Stands in for the adb binary behind :func:`gadget.bridge.executor.run_adb`.

    Responses are matched on an argument prefix (and optionally the ``-s``
    serial); the most recently registered match wins. Unmatched commands
    succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str | None, list[str]]] = []
        self._responses: list[tuple[list[str], str | None, object]] = []

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        serial: str | None = None,
        raises: BaseException | None = None,
    ) -> None:
        result = raises or (stdout, stderr, returncode)
        self._responses.append((list(prefix), serial, result))

    def __call__(self, cmd: Sequence[str], timeout: float) -> subprocess.CompletedProcess:
        args = list(cmd[1:])
        serial = None
        if args[:1] == ["-s"]:
            serial = args[1]
            args = args[2:]
        self.calls.append((serial, args))

        for prefix, want_serial, result in reversed(self._responses):
            if args[: len(prefix)] != prefix:
                continue
            if want_serial is not None and want_serial != serial:
                continue
            if isinstance(result, BaseException):
                raise result
            stdout, stderr, returncode = result
            return subprocess.CompletedProcess(list(cmd), returncode, stdout, stderr)
        return subprocess.CompletedProcess(list(cmd), 0, "", "")

    def commands(self) -> list[list[str]]:
        return [args for _, args in self.calls]

    def ran(self, *prefix: str) -> bool:
        return any(args[: len(prefix)] == list(prefix) for _, args in self.calls)


@pytest.fixture(autouse=True)
def _quiet_logging():
    setup_logging(level="WARNING")
    yield
    executor.reset_runner()


@pytest.fixture()
def fake_adb() -> FakeAdb:
    fake = FakeAdb()
    executor.set_runner(fake)
    return fake


@pytest.fixture()
def config(tmp_path: Path) -> GadgetConfig:
    """Config rooted in tmp_path with every delay shrunk for tests."""
    sdk = tmp_path / "sdk"
    (sdk / "platform-tools").mkdir(parents=True)
    (sdk / "platform-tools" / "adb").touch()
    return GadgetConfig(
        android_home=sdk,
        media_path=tmp_path / "media",
        avd_home=tmp_path / "avd",
        log_file=tmp_path / "gadget.log",
        refresh_interval_s=60.0,
        settle_delay_s=0.0,
        emulator_refresh_delay_s=0.0,
    )


@pytest.fixture()
def usb_device() -> Device:
    return Device(serial="R58M123ABC", status="device", product="beyond1", model="SM_G973F")


@pytest.fixture()
def emulator_device() -> Device:
    return Device(
        serial="emulator-5554",
        status="device",
        product="sdk_gphone64_arm64",
        model="sdk_gphone64_arm64",
    )
