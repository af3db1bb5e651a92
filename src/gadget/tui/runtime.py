"""Single-inbox loop that drives the session controller.

Messages from any thread go through :meth:`SessionRuntime.post`. One loop
thread takes them off the inbox in order, hands each to the controller,
publishes a snapshot, and schedules the returned tasks on a worker pool.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from gadget.tui.controller import SessionController
from gadget.tui.dispatch import Task, execute
from gadget.tui.messages import Message
from gadget.tui.state import SessionSnapshot
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WORKERS = 16

_STOP = object()


class SessionRuntime:
    """Runs the controller loop and the tasks it dispatches.

    Args:
        controller: The session state machine.
        on_snapshot: Called from the loop thread after every message.
        on_foreground: Receives tasks that need the terminal; it must run
            them with :meth:`run_foreground`. Without it they run on the pool.
        on_quit: Called once when the controller asks to quit.
    """

    def __init__(
        self,
        controller: SessionController,
        on_snapshot: Callable[[SessionSnapshot], None],
        on_foreground: Callable[[Task], None] | None = None,
        on_quit: Callable[[], None] | None = None,
        max_workers: int = DEFAULT_WORKERS,
    ) -> None:
        self.controller = controller
        self._on_snapshot = on_snapshot
        self._on_foreground = on_foreground
        self._on_quit = on_quit
        self._inbox: queue.Queue = queue.Queue()
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="gadget-task"
        )
        self._thread: threading.Thread | None = None
        self._closed = threading.Event()

    def start(self) -> None:
        """Launch the startup tasks and the loop thread."""
        self._publish()
        self._launch(self.controller.start())
        self._thread = threading.Thread(target=self._loop, name="session-loop", daemon=True)
        self._thread.start()

    def post(self, msg: Message) -> None:
        """Queue a message for the controller; safe from any thread."""
        if self._closed.is_set():
            return
        self._inbox.put(msg)

    def run_foreground(self, task: Task) -> None:
        """Run a foreground task in the calling thread and post its outcome."""
        outcome = execute(task, self.post)
        if outcome is not None:
            self.post(outcome)

    def stop(self) -> None:
        """Stop the loop, the controller's producers, and the worker pool."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._inbox.put(_STOP)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self.controller.close()
        self._pool.shutdown(wait=False, cancel_futures=True)
        logger.info("session_stopped")

    def drain(self) -> None:
        """Handle every queued message in the calling thread (tests)."""
        while True:
            try:
                msg = self._inbox.get_nowait()
            except queue.Empty:
                return
            if msg is _STOP:
                return
            self._handle(msg)

    def _loop(self) -> None:
        while True:
            msg = self._inbox.get()
            if msg is _STOP:
                return
            self._handle(msg)
            if self.controller.state.quitting:
                if self._on_quit is not None:
                    self._on_quit()
                return

    def _handle(self, msg: Message) -> None:
        try:
            tasks = self.controller.update(msg)
        except Exception:
            # A controller bug must not kill the loop
            logger.exception("message_handling_failed", message=type(msg).__name__)
            tasks = []
        self._publish()
        self._launch(tasks)

    def _publish(self) -> None:
        try:
            self._on_snapshot(self.controller.snapshot())
        except Exception:
            logger.exception("snapshot_publish_failed")

    def _launch(self, tasks: list[Task]) -> None:
        for task in tasks:
            if self._closed.is_set():
                return
            if task.foreground and self._on_foreground is not None:
                self._on_foreground(task)
            else:
                try:
                    self._pool.submit(self._run_task, task)
                except RuntimeError:
                    # Pool already shut down
                    logger.debug("task_dropped", task=task.name)
                    return

    def _run_task(self, task: Task) -> None:
        outcome = execute(task, self.post)
        if outcome is not None:
            self.post(outcome)
