"""Producers of device-list refresh signals.

Each producer is a one-shot task; the controller re-arms the watcher and
periodic producers every time they fire. All of them return None once
*stopped* is set so shutdown never waits on a sleeping worker.
"""

from __future__ import annotations

import threading

from gadget.bridge.tracking import DeviceWatcher
from gadget.tui.dispatch import Emit, Task
from gadget.tui.messages import Message, RefreshRequested, WatcherStopped
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

REASON_DEVICE_CHANGE = "device-change"
REASON_PERIODIC = "periodic"
REASON_EMULATOR_LAUNCH = "emulator-launch"


def watch_devices(
    watcher: DeviceWatcher,
    settle_delay: float,
    stopped: threading.Event,
) -> Task:
    """Wait for the next device event, let the burst settle, then ask for one refresh."""

    def run(emit: Emit) -> Message | None:
        event = watcher.wait_event()
        if stopped.is_set():
            return None
        if event is None:
            return WatcherStopped()
        # Freshly attached devices are not queryable right away
        if stopped.wait(settle_delay):
            return None
        events = [event, *watcher.drain()]
        identifiers = tuple(dict.fromkeys(e.identifier for e in events))
        logger.info("device_change", identifiers=list(identifiers), events=len(events))
        return RefreshRequested(REASON_DEVICE_CHANGE, identifiers)

    return Task(
        name="watch-devices",
        run=run,
        on_error=lambda exc: WatcherStopped(error=str(exc)),
    )


def periodic_refresh(interval: float, stopped: threading.Event) -> Task:
    def run(emit: Emit) -> Message | None:
        if stopped.wait(interval):
            return None
        return RefreshRequested(REASON_PERIODIC)

    return Task(name="periodic-refresh", run=run)


def delayed_refresh(delay: float, stopped: threading.Event, reason: str = REASON_EMULATOR_LAUNCH) -> Task:
    def run(emit: Emit) -> Message | None:
        if stopped.wait(delay):
            return None
        return RefreshRequested(reason)

    return Task(name=f"delayed-refresh-{reason}", run=run)
