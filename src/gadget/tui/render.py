"""Plain-text rendering of a session snapshot."""

from __future__ import annotations

import time
from collections import Counter

from gadget.bridge.devices import ConnectionType
from gadget.registry import CATALOG
from gadget.tui.state import (
    ACTIVITY_LABELS,
    Activity,
    LogEntry,
    Mode,
    SessionSnapshot,
    Severity,
)

TITLE = "Gadget - Android development toolkit"
CURSOR = "█"

_SEVERITY_PREFIX = {
    Severity.SUCCESS: "✓",
    Severity.ERROR: "✗",
    Severity.INFO: "•",
}

_CONNECTION_LABELS = (
    (ConnectionType.PHYSICAL, "USB"),
    (ConnectionType.WIFI, "WiFi"),
    (ConnectionType.EMULATOR, "Emulator"),
)

_FOOTERS = {
    Mode.MENU: "type to filter • ↑/↓ navigate • enter select • esc clear/stop recording • ctrl+c quit",
    Mode.DEVICE_SELECT: "↑/↓ or j/k navigate • enter select • esc back",
    Mode.EMULATOR_SELECT: "↑/↓ or j/k navigate • enter select • esc back",
    Mode.TEXT_INPUT: "enter submit • esc cancel",
}

# Progress-line wording; the recording line carries the stop hint
_PROGRESS_TEXT = {
    Activity.SCREENSHOT: "Taking screenshot",
    Activity.DAY_NIGHT: "Taking day-night screenshots",
    Activity.RECORDING: "Recording screen • Press Esc in the menu to stop",
    Activity.CONNECTING_WIFI: "Connecting to WiFi device",
    Activity.DISCONNECTING_WIFI: "Disconnecting from WiFi device",
    Activity.PAIRING_WIFI: "Pairing with WiFi device",
    Activity.CHANGING_SETTING: "Changing setting",
    Activity.LAUNCHING_EMULATOR: "Launching emulator",
}


def format_elapsed(seconds: float) -> str:
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}m{seconds:02d}s"


def render_status(snapshot: SessionSnapshot) -> str:
    """One-line status bar: device counts, filter, command count, active work."""
    parts: list[str] = []
    if not snapshot.devices_loaded:
        parts.append("Devices: loading")
    elif not snapshot.devices:
        parts.append("Devices: none")
    else:
        counts = Counter(d.connection_type for d in snapshot.devices)
        detail = ", ".join(
            f"{counts[kind]} {label}" for kind, label in _CONNECTION_LABELS if counts[kind]
        )
        parts.append(f"Devices: {len(snapshot.devices)} ({detail})")
    if snapshot.search_query:
        parts.append(f"Filter: {snapshot.search_query}")
    parts.append(f"Commands: {len(snapshot.filtered_commands)}/{len(CATALOG)}")
    if snapshot.activities:
        labels = [ACTIVITY_LABELS[a] for a in snapshot.activities]
        parts.append("Active: " + ", ".join(labels))
    return " | ".join(parts)


def render_menu(snapshot: SessionSnapshot) -> list[str]:
    if not snapshot.filtered_commands:
        return [f"No commands match '{snapshot.search_query}'"]

    lines: list[str] = []
    # Category headings only make sense in the unfiltered order
    grouped = not snapshot.search_query
    category = None
    for index, entry in enumerate(snapshot.filtered_commands):
        if grouped and entry.category != category:
            category = entry.category
            if lines:
                lines.append("")
            lines.append(category)
        marker = "> " if index == snapshot.selected_index else "  "
        lines.append(f"{marker}{entry.name}")

    selected = snapshot.filtered_commands[
        min(snapshot.selected_index, len(snapshot.filtered_commands) - 1)
    ]
    lines.append("")
    lines.append(f"→ {selected.description}")
    return lines


def render_device_select(snapshot: SessionSnapshot) -> list[str]:
    title = "Select device"
    if snapshot.pending_command is not None:
        title = f"Select device for {snapshot.pending_command.name}"
    lines = [title, ""]
    if not snapshot.devices:
        lines.append("No devices connected")
        return lines
    for index, device in enumerate(snapshot.devices):
        marker = "> " if index == snapshot.selected_device_index else "  "
        lines.append(f"{marker}{device.display_name()}")
        info = device.extended_info()
        if info:
            lines.append(f"    {info}")
    return lines


def render_emulator_select(snapshot: SessionSnapshot) -> list[str]:
    title = "Select emulator"
    if snapshot.pending_command is not None:
        title = f"Select emulator to {snapshot.pending_command.name.lower()}"
    lines = [title, ""]
    if not snapshot.avds and snapshot.avds_loading:
        lines.append("Loading emulators...")
        return lines
    if not snapshot.avds:
        lines.append("No AVDs found. Create one with Android Studio's Device Manager.")
        return lines
    for index, avd in enumerate(snapshot.avds):
        marker = "> " if index == snapshot.selected_emulator_index else "  "
        lines.append(f"{marker}{avd}")
    return lines


def render_text_input(snapshot: SessionSnapshot) -> list[str]:
    lines = snapshot.text_prompt.splitlines() or [""]
    lines.append("")
    lines.append(f"> {snapshot.text_input}{CURSOR}")
    return lines


def render_progress(snapshot: SessionSnapshot, now: float) -> list[str]:
    lines: list[str] = []
    for activity, started in snapshot.activities.items():
        text = _PROGRESS_TEXT.get(activity)
        if text is None:
            continue
        if activity is Activity.RECORDING and snapshot.recording_stopping:
            text = "Saving screen recording"
        lines.append(f"{text}... {format_elapsed(now - started)}")
    lines.extend(f"  {line}" for line in snapshot.live_output)
    return lines


def render_log_entry(entry: LogEntry) -> list[str]:
    prefix = _SEVERITY_PREFIX[entry.severity]
    stamp = entry.timestamp.strftime("%H:%M:%S")
    first, *rest = entry.message.split("\n")
    lines = [f"[{stamp}] {prefix} {first.strip()}"]
    lines.extend(f" {line.strip()}" for line in rest if line.strip())
    lines.extend(f"   {line}" for line in entry.details)
    return lines


_BODIES = {
    Mode.MENU: render_menu,
    Mode.DEVICE_SELECT: render_device_select,
    Mode.EMULATOR_SELECT: render_emulator_select,
    Mode.TEXT_INPUT: render_text_input,
}


def render(snapshot: SessionSnapshot, now: float | None = None) -> str:
    """Render the whole screen.

    Args:
        snapshot: State to draw.
        now: Monotonic time used for elapsed-time counters; defaults to
            ``time.monotonic()``, the clock activities are stamped with.
    """
    if now is None:
        now = time.monotonic()

    lines = [TITLE, render_status(snapshot)]
    if snapshot.device_error:
        lines.append(f"⚠ {snapshot.device_error}")
    lines.append("")
    lines.extend(_BODIES[snapshot.mode](snapshot))

    progress = render_progress(snapshot, now)
    if progress:
        lines.append("")
        lines.extend(progress)

    if snapshot.mode in (Mode.MENU, Mode.TEXT_INPUT) and snapshot.log:
        lines.append("")
        for entry in snapshot.log:
            lines.extend(render_log_entry(entry))

    lines.append("")
    lines.append(_FOOTERS[snapshot.mode])
    return "\n".join(lines)
