"""Unit tests for gadget.tui.render."""

from __future__ import annotations

from datetime import datetime

import pytest

from gadget.bridge.devices import Device
from gadget.emulator import Avd
from gadget.registry import find_entry
from gadget.tui import render
from gadget.tui.fuzzy import filter_commands
from gadget.tui.state import (
    Activity,
    LogEntry,
    LogHistory,
    Mode,
    SessionState,
    Severity,
)


@pytest.fixture()
def state() -> SessionState:
    return SessionState(log=LogHistory(5))


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

class TestFormatElapsed:
    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (7.9, "7s"),
        (59, "59s"),
        (60, "1m00s"),
        (125, "2m05s"),
        (-3, "0s"),
    ])
    def test_format(self, seconds, expected):
        assert render.format_elapsed(seconds) == expected


class TestLogEntry:
    def test_single_line(self):
        entry = LogEntry("Refreshing devices", Severity.INFO, datetime(2024, 5, 1, 9, 5, 3))
        assert render.render_log_entry(entry) == ["[09:05:03] • Refreshing devices"]

    def test_multiline_and_details(self):
        entry = LogEntry(
            "Screenshot captured on AAA\n~/Downloads/a.png",
            Severity.SUCCESS,
            datetime(2024, 5, 1, 12, 0, 0),
            details=("Screenshot saved to: /x/a.png",),
        )
        assert render.render_log_entry(entry) == [
            "[12:00:00] ✓ Screenshot captured on AAA",
            " ~/Downloads/a.png",
            "   Screenshot saved to: /x/a.png",
        ]


# ---------------------------------------------------------------------------
# Status bar
# ---------------------------------------------------------------------------

class TestStatus:
    def test_loading(self, state):
        assert render.render_status(state.snapshot()).startswith("Devices: loading")

    def test_none(self, state):
        state.devices_loaded = True
        assert render.render_status(state.snapshot()).startswith("Devices: none")

    def test_counts_by_connection(self, state):
        state.devices_loaded = True
        state.devices = [
            Device(serial="AAA", status="device"),
            Device(serial="BBB", status="device"),
            Device(serial="10.0.0.2:4444", status="device"),
            Device(serial="emulator-5554", status="device"),
        ]
        status = render.render_status(state.snapshot())
        assert status.startswith("Devices: 4 (2 USB, 1 WiFi, 1 Emulator)")
        assert "Commands: 12/12" in status

    def test_filter_and_activities(self, state):
        state.search_query = "dpi"
        state.filtered_commands = filter_commands("dpi")
        state.activities[Activity.SCREENSHOT] = 0.0
        status = render.render_status(state.snapshot())
        assert "Filter: dpi" in status
        assert f"Commands: {len(state.filtered_commands)}/12" in status
        assert status.endswith("Active: Screenshot")


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------

class TestMenu:
    def test_grouped_when_unfiltered(self, state):
        lines = render.render_menu(state.snapshot())
        assert lines[0] == "Media"
        assert lines[1] == "> Screenshot"
        assert lines[-1].startswith("→ ")

    def test_no_headings_when_filtered(self, state):
        state.search_query = "wifi"
        state.filtered_commands = filter_commands("wifi")
        lines = render.render_menu(state.snapshot())
        assert lines[0].startswith("> ")

    def test_no_matches(self, state):
        state.search_query = "zzz"
        state.filtered_commands = []
        assert render.render_menu(state.snapshot()) == ["No commands match 'zzz'"]


class TestSelectionScreens:
    def test_device_select(self, state):
        state.mode = Mode.DEVICE_SELECT
        state.pending_command = find_entry("screenshot")
        state.devices = [
            Device(serial="AAA", status="device", model="Pixel_8", product="shiba",
                   android_version="14", api_level=34),
            Device(serial="emulator-5554", status="device", product="sdk_gphone64_arm64"),
        ]
        state.selected_device_index = 1
        lines = render.render_device_select(state.snapshot())
        assert lines[0] == "Select device for Screenshot"
        assert "  AAA (Pixel_8 - shiba)" in lines
        assert "    Android 14 (API 34)" in lines
        assert "> emulator-5554 (gphone64 arm64 • Emulator)" in lines

    def test_device_select_empty(self, state):
        state.mode = Mode.DEVICE_SELECT
        assert render.render_device_select(state.snapshot())[-1] == "No devices connected"

    def test_emulator_select(self, state, tmp_path):
        state.mode = Mode.EMULATOR_SELECT
        state.pending_command = find_entry("launch-emulator")
        state.avds = [Avd(name="Pixel_7", path=tmp_path)]
        lines = render.render_emulator_select(state.snapshot())
        assert lines[0] == "Select emulator to launch emulator"
        assert lines[-1] == "> Pixel_7"

    def test_emulator_select_empty(self, state):
        state.mode = Mode.EMULATOR_SELECT
        lines = render.render_emulator_select(state.snapshot())
        assert lines[-1].startswith("No AVDs found")

    def test_emulator_select_while_loading(self, state):
        state.mode = Mode.EMULATOR_SELECT
        state.avds_loading = True
        lines = render.render_emulator_select(state.snapshot())
        assert lines[-1] == "Loading emulators..."

    def test_text_input(self, state):
        state.mode = Mode.TEXT_INPUT
        state.text_prompt = "Enter address\nDefaults to port 4444"
        state.text_input = "10.0"
        assert render.render_text_input(state.snapshot()) == [
            "Enter address",
            "Defaults to port 4444",
            "",
            "> 10.0█",
        ]


# ---------------------------------------------------------------------------
# Progress and full screen
# ---------------------------------------------------------------------------

class TestProgress:
    def test_elapsed(self, state):
        state.activities[Activity.SCREENSHOT] = 100.0
        assert render.render_progress(state.snapshot(), now=103.5) == [
            "Taking screenshot... 3s"
        ]

    def test_loading_activities_not_shown(self, state):
        state.activities[Activity.LOADING_DEVICES] = 100.0
        assert render.render_progress(state.snapshot(), now=101.0) == []

    def test_recording_hint_and_saving(self, state):
        state.activities[Activity.RECORDING] = 0.0
        assert render.render_progress(state.snapshot(), now=65.0) == [
            "Recording screen • Press Esc in the menu to stop... 1m05s"
        ]
        state.recording_stopping = True
        assert render.render_progress(state.snapshot(), now=65.0)[0].startswith(
            "Saving screen recording"
        )

    def test_live_output(self, state):
        state.activities[Activity.DAY_NIGHT] = 0.0
        state.live_output.extend(["Setting dark mode...", "Taking night screenshot..."])
        lines = render.render_progress(state.snapshot(), now=0.0)
        assert lines[1:] == ["  Setting dark mode...", "  Taking night screenshot..."]


class TestRender:
    def test_menu_screen(self, state):
        state.log.add("No devices connected", Severity.ERROR)
        screen = render.render(state.snapshot(), now=0.0)
        lines = screen.splitlines()
        assert lines[0] == render.TITLE
        assert any("✗ No devices connected" in line for line in lines)
        assert lines[-1].startswith("type to filter")

    def test_device_error_banner(self, state):
        state.device_error = "cannot connect to daemon"
        screen = render.render(state.snapshot(), now=0.0)
        assert screen.splitlines()[2] == "⚠ cannot connect to daemon"

    def test_log_hidden_in_selection(self, state):
        state.mode = Mode.DEVICE_SELECT
        state.log.add("Refreshing devices", Severity.INFO)
        screen = render.render(state.snapshot(), now=0.0)
        assert "Refreshing devices" not in screen
        assert screen.splitlines()[-1].endswith("esc back")

    def test_recording_hint_names_menu_in_selection(self, state):
        state.mode = Mode.DEVICE_SELECT
        state.activities[Activity.RECORDING] = 0.0
        screen = render.render(state.snapshot(), now=5.0)
        assert "Press Esc in the menu to stop... 5s" in screen
        assert screen.splitlines()[-1].endswith("esc back")
