"""Screen recording: a long-lived ``screenrecord`` process plus a save step."""

from __future__ import annotations

import signal
import subprocess
import threading
import time
from datetime import datetime
from pathlib import Path

import click

from gadget.bridge.devices import Device
from gadget.bridge.executor import build_command, run_adb
from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError, RecordingError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
FINALIZE_SECONDS = 2.0
_STOP_TIMEOUT_SECONDS = 10


class ScreenRecording:
    """An in-progress ``adb shell screenrecord`` session.

    Created by :func:`start_screen_record`; finished exactly once with
    :meth:`stop_and_save`.
    """

    def __init__(
        self,
        config: GadgetConfig,
        device: Device,
        process: subprocess.Popen,
        remote_path: str,
        local_path: Path,
    ) -> None:
        self.config = config
        self.device = device
        self.process = process
        self.remote_path = remote_path
        self.local_path = local_path
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def serial(self) -> str:
        return self.device.serial

    def stop_and_save(self, finalize_seconds: float = FINALIZE_SECONDS) -> Path:
        """Interrupt the recorder, pull the video, and remove it from the device.

        Returns:
            Local path of the saved MP4.

        Raises:
            RecordingError: Already stopped, the file never appeared on the
                device, or both pull attempts failed.
        """
        with self._lock:
            if self._stopped:
                raise RecordingError("recording already stopped")
            self._stopped = True

        self._interrupt()
        # screenrecord finalizes the MP4 after SIGINT
        time.sleep(finalize_seconds)

        try:
            listing = run_adb(
                self.config, "shell", "ls", "-la", self.remote_path, serial=self.serial
            )
        except BridgeError as exc:
            raise RecordingError(
                f"recording file not found on device: {self.remote_path}", detail=str(exc)
            ) from exc
        click.echo(f"File on device: {listing.strip()}")

        self.local_path.parent.mkdir(parents=True, exist_ok=True)
        self._pull()

        run_adb(
            self.config, "shell", "rm", self.remote_path, serial=self.serial, check=False
        )
        click.echo(f"Screen recording saved to: {self.local_path}")
        logger.info("recording_saved", serial=self.serial, path=str(self.local_path))
        return self.local_path

    def abort(self) -> None:
        """Kill the recorder without saving; the remote file is left behind."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        if self.process.poll() is None:
            logger.info("recording_abort", serial=self.serial)
            self.process.kill()
            self.process.wait()

    def _interrupt(self) -> None:
        proc = self.process
        if proc.poll() is not None:
            return
        logger.info("recording_stop", serial=self.serial)
        try:
            proc.send_signal(signal.SIGINT)
        except OSError as exc:
            raise RecordingError(f"failed to stop recording: {exc}") from exc
        try:
            proc.wait(timeout=_STOP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    def _pull(self) -> None:
        local = str(self.local_path)
        try:
            run_adb(self.config, "pull", self.remote_path, local, serial=self.serial)
            return
        except BridgeError as first:
            click.echo(f"Pull attempt 1 failed. Error: {first}")
            first_error = first

        # Retry without -s; works when the serial changed while recording
        try:
            run_adb(self.config, "pull", self.remote_path, local)
        except BridgeError as second:
            click.echo(f"Pull attempt 2 failed. Error: {second}")
            raise RecordingError(
                f"both pull attempts failed. First: {first_error}, Second: {second}"
            ) from second


def start_screen_record(config: GadgetConfig, device: Device) -> ScreenRecording:
    """Start recording the screen of *device*.

    Raises:
        RecordingError: The recorder process could not be launched.
    """
    stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    local_path = config.media_path / f"android-vid-{stamp}.mp4"
    remote_path = f"/sdcard/screenrecord_{stamp}.mp4"

    cmd = build_command(config, ["shell", "screenrecord", remote_path], serial=device.serial)
    logger.info("recording_start", serial=device.serial, remote=remote_path)
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise RecordingError(f"failed to start screen recording: {exc}") from exc

    return ScreenRecording(config, device, proc, remote_path, local_path)
