"""Textual application hosting the interactive session."""

from __future__ import annotations

import threading

from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.widgets import Static

from gadget.bridge.tracking import DeviceWatcher
from gadget.config import GadgetConfig
from gadget.tui.controller import KEY_QUIT, SessionController
from gadget.tui.dispatch import Task
from gadget.tui.messages import KeyPress
from gadget.tui.render import render
from gadget.tui.runtime import SessionRuntime
from gadget.tui.state import SessionSnapshot
from gadget.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def key_name(event: events.Key) -> str:
    """Map a Textual key event onto the key names the controller expects."""
    if event.character and len(event.character) == 1 and event.character.isprintable():
        return event.character
    return event.key


class GadgetApp(App):
    """Full-screen view of the session; every keystroke goes to the controller."""

    CSS = """
    #screen {
        padding: 0 1;
    }
    """

    # ctrl+c must reach the controller instead of Textual's own handling
    BINDINGS = [Binding("ctrl+c", "quit_session", show=False, priority=True)]

    def __init__(self, controller: SessionController) -> None:
        super().__init__()
        self.runtime = SessionRuntime(
            controller,
            on_snapshot=self._snapshot_from_loop,
            on_foreground=self._foreground_from_loop,
            on_quit=lambda: self.call_from_thread(self.exit),
        )
        self._snapshot: SessionSnapshot | None = None
        self._ui_thread: int | None = None

    def compose(self) -> ComposeResult:
        yield Static("", id="screen", markup=False)

    def on_mount(self) -> None:
        self.title = "Gadget"
        self._ui_thread = threading.get_ident()
        self.runtime.start()
        # Keeps elapsed-time counters moving between messages
        self.set_interval(1.0, self._redraw)

    def on_unmount(self) -> None:
        self.runtime.stop()

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        self.runtime.post(KeyPress(key_name(event)))

    def action_quit_session(self) -> None:
        self.runtime.post(KeyPress(KEY_QUIT))

    def _snapshot_from_loop(self, snapshot: SessionSnapshot) -> None:
        # The first snapshot is published from on_mount, already on the UI thread
        if threading.get_ident() == self._ui_thread:
            self._show(snapshot)
        else:
            self.call_from_thread(self._show, snapshot)

    def _show(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        self._redraw()

    def _redraw(self) -> None:
        if self._snapshot is None:
            return
        self.query_one("#screen", Static).update(render(self._snapshot))

    def _foreground_from_loop(self, task: Task) -> None:
        self.call_from_thread(self._run_foreground, task)

    def _run_foreground(self, task: Task) -> None:
        try:
            with self.suspend():
                self.runtime.run_foreground(task)
        except SuspendNotSupported as exc:
            logger.warning("suspend_unsupported", task=task.name)
            if task.on_error is not None:
                self.runtime.post(task.on_error(exc))
        self.refresh()


def run_interactive(config: GadgetConfig, debug: bool = False) -> None:
    """Start the interactive session; returns when the user quits."""
    setup_logging(level="DEBUG" if debug else "INFO", log_file=config.log_file)
    logger.info("session_start", adb=str(config.adb_path), media=str(config.media_path))
    controller = SessionController(config, watcher=DeviceWatcher(config))
    GadgetApp(controller).run()
