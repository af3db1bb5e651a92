"""Device-change watcher backed by ``adb track-devices``.

The bridge streams one ``<serial>\\t<status>`` line per transition. A daemon
reader thread parses those lines into :class:`DeviceEvent` objects and pushes
them into a small bounded queue. The subprocess is killed when the reader
loop ends, however it ends.
"""

from __future__ import annotations

import queue
import subprocess
import threading
import time
from dataclasses import dataclass

from gadget.bridge.executor import build_command
from gadget.config import GadgetConfig
from gadget.exceptions import WatcherError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

TRACKED_STATUSES = frozenset({"device", "offline", "disconnected"})
EVENT_QUEUE_SIZE = 10

_POLL_INTERVAL_S = 0.2


@dataclass(frozen=True)
class DeviceEvent:
    """A device attached, detached, or went offline."""
    identifier: str
    status: str


def parse_status_line(line: str) -> DeviceEvent | None:
    """Parse a ``serial<TAB>status`` line; anything else yields None."""
    line = line.strip()
    if not line:
        return None
    parts = line.split("\t")
    if len(parts) < 2:
        return None
    identifier = parts[0].strip()
    status = parts[1].strip()
    if not identifier or status not in TRACKED_STATUSES:
        return None
    return DeviceEvent(identifier=identifier, status=status)


class DeviceWatcher:
    """Owns the ``adb track-devices`` process and its reader thread.

    Usage::

        watcher = DeviceWatcher(config)
        watcher.start()
        event = watcher.wait_event()   # None once the stream has closed
    """

    def __init__(self, config: GadgetConfig, queue_size: int = EVENT_QUEUE_SIZE) -> None:
        self._config = config
        self._send_timeout = config.watcher_send_timeout_s
        self._events: queue.Queue[DeviceEvent] = queue.Queue(maxsize=queue_size)
        self._closed = threading.Event()
        self._process: subprocess.Popen | None = None
        self._thread: threading.Thread | None = None
        self._dropped = 0

    @property
    def closed(self) -> bool:
        """True once the reader loop has exited and the process is gone."""
        return self._closed.is_set()

    @property
    def dropped(self) -> int:
        return self._dropped

    def start(self) -> None:
        """Spawn the bridge process and the reader thread.

        Raises:
            WatcherError: The process could not be launched.
        """
        if self._process is not None:
            return
        cmd = build_command(self._config, ["track-devices"])
        logger.info("watcher_start", cmd=" ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                text=True,
            )
        except OSError as exc:
            self._closed.set()
            raise WatcherError(f"Failed to start adb track-devices: {exc}") from exc

        self._process = proc
        self._thread = threading.Thread(
            target=self._read_loop,
            args=(proc,),
            name="device-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Kill the bridge process; the reader thread then exits on EOF."""
        proc = self._process
        if proc is not None and proc.poll() is None:
            logger.info("watcher_stop")
            proc.kill()
        if self._thread is not None:
            self._thread.join(timeout=2.0)

    def wait_event(self, timeout: float | None = None) -> DeviceEvent | None:
        """Block until the next event arrives.

        Returns None when the watcher has closed and no events remain, or when
        *timeout* elapses first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                return self._events.get(timeout=_POLL_INTERVAL_S)
            except queue.Empty:
                if self._closed.is_set() and self._events.empty():
                    return None
                if deadline is not None and time.monotonic() >= deadline:
                    return None

    def drain(self) -> list[DeviceEvent]:
        """Return every queued event without blocking."""
        events = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def _read_loop(self, proc: subprocess.Popen) -> None:
        try:
            assert proc.stdout is not None
            for raw in proc.stdout:
                event = parse_status_line(raw)
                if event is None:
                    continue
                try:
                    self._events.put(event, timeout=self._send_timeout)
                except queue.Full:
                    self._dropped += 1
                    logger.debug("watcher_event_dropped", serial=event.identifier)
        except (OSError, ValueError) as exc:
            # Stream errors end the loop quietly; restarting is the owner's job
            logger.debug("watcher_stream_error", error=str(exc))
        finally:
            if proc.poll() is None:
                proc.kill()
            proc.wait()
            self._closed.set()
            logger.info("watcher_closed", returncode=proc.returncode)
