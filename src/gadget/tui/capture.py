"""Scoped capture of ``sys.stdout``/``sys.stderr`` into bounded line queues.

Device operations echo progress text instead of returning it. While a
capture is active both streams are replaced by the write ends of two OS
pipes; a reader thread per pipe splits the text into lines and queues the
non-empty ones. Only one capture may own the process streams at a time.
"""

from __future__ import annotations

import os
import queue
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TextIO

from gadget.exceptions import CaptureBusyError, CaptureError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

LINE_QUEUE_SIZE = 100

# Held for the whole lifetime of an active capture
_slot = threading.Lock()


def capture_active() -> bool:
    """True while some capture owns the process output streams."""
    return _slot.locked()


class OutputCapture:
    """Redirects the process output streams until :meth:`stop`.

    Args:
        queue_size: Capacity of each per-stream line queue. Lines arriving
            while a queue is full are dropped.
        on_line: Called from the reader threads with every non-empty line,
            for live display. Must not block.
    """

    def __init__(
        self,
        queue_size: int = LINE_QUEUE_SIZE,
        on_line: Callable[[str], None] | None = None,
    ) -> None:
        self._stdout_lines: queue.Queue[str] = queue.Queue(maxsize=queue_size)
        self._stderr_lines: queue.Queue[str] = queue.Queue(maxsize=queue_size)
        self._on_line = on_line
        self._mu = threading.Lock()
        self._capturing = False
        self._saved: tuple[TextIO, TextIO] | None = None
        self._writers: list[TextIO] = []
        self._readers: list[TextIO] = []
        self._threads: list[threading.Thread] = []
        self.dropped = 0

    @property
    def active(self) -> bool:
        return self._capturing

    def start(self) -> None:
        """Begin capturing. A second call while active is a no-op.

        Raises:
            CaptureBusyError: Another capture is already active.
            CaptureError: The pipes could not be created.
        """
        with self._mu:
            if self._capturing:
                return
            if not _slot.acquire(blocking=False):
                raise CaptureBusyError("another output capture is already active")
            try:
                out_r, out_w = os.pipe()
                try:
                    err_r, err_w = os.pipe()
                except OSError:
                    os.close(out_r)
                    os.close(out_w)
                    raise
            except OSError as exc:
                _slot.release()
                raise CaptureError(f"failed to create capture pipes: {exc}") from exc

            self._readers = [
                open(out_r, encoding="utf-8", errors="replace"),
                open(err_r, encoding="utf-8", errors="replace"),
            ]
            self._writers = [
                open(out_w, "w", buffering=1, encoding="utf-8", errors="replace"),
                open(err_w, "w", buffering=1, encoding="utf-8", errors="replace"),
            ]
            self._saved = (sys.stdout, sys.stderr)
            sys.stdout, sys.stderr = self._writers

            self._threads = [
                threading.Thread(
                    target=self._read_lines,
                    args=(reader, lines),
                    name=f"capture-{name}",
                    daemon=True,
                )
                for name, reader, lines in (
                    ("stdout", self._readers[0], self._stdout_lines),
                    ("stderr", self._readers[1], self._stderr_lines),
                )
            ]
            for thread in self._threads:
                thread.start()
            self._capturing = True

    def stop(self) -> None:
        """Restore the streams and wait for the readers to drain.

        A call without an active capture is a no-op.
        """
        with self._mu:
            if not self._capturing:
                return
            try:
                assert self._saved is not None
                sys.stdout, sys.stderr = self._saved
                for writer in self._writers:
                    try:
                        writer.close()
                    except OSError as exc:
                        logger.debug("capture_writer_close_failed", error=str(exc))
                for thread in self._threads:
                    thread.join()
                for reader in self._readers:
                    reader.close()
            finally:
                self._saved = None
                self._writers = []
                self._readers = []
                self._threads = []
                self._capturing = False
                _slot.release()

    def get_all_output(self) -> list[str]:
        """Drain both queues: stdout lines first, then stderr lines."""
        lines = _drain(self._stdout_lines)
        lines.extend(_drain(self._stderr_lines))
        return lines

    def __enter__(self) -> OutputCapture:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _read_lines(self, reader: TextIO, lines: queue.Queue[str]) -> None:
        for raw in reader:
            line = raw.rstrip("\r\n")
            if not line:
                continue
            if self._on_line is not None:
                self._on_line(line)
            try:
                lines.put_nowait(line)
            except queue.Full:
                self.dropped += 1


def _drain(lines: queue.Queue[str]) -> list[str]:
    drained = []
    while True:
        try:
            drained.append(lines.get_nowait())
        except queue.Empty:
            return drained


@dataclass(frozen=True)
class CaptureResult:
    """Lines printed by a captured call and how the call ended.

    ``error`` is the exception the call raised, unchanged, or None.
    """
    lines: tuple[str, ...]
    error: Exception | None = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


def capture_function(
    fn: Callable[[], Any],
    on_line: Callable[[str], None] | None = None,
) -> CaptureResult:
    """Run *fn* with its printed output captured.

    The streams are restored even when *fn* raises. Failures of *fn* are
    returned in the result; failures to set up the capture are raised and
    *fn* is not run.

    Raises:
        CaptureError: The capture could not start (including
            :class:`CaptureBusyError`).
    """
    capture = OutputCapture(on_line=on_line)
    capture.start()
    value = None
    error: Exception | None = None
    try:
        value = fn()
    except Exception as exc:
        error = exc
    finally:
        capture.stop()
    return CaptureResult(lines=tuple(capture.get_all_output()), error=error, value=value)
