"""Unit tests for gadget.bridge.tracking (adb track-devices watcher)."""

from __future__ import annotations

import io
import threading
from unittest.mock import MagicMock, patch

import pytest

from gadget.bridge.tracking import DeviceEvent, DeviceWatcher, parse_status_line
from gadget.exceptions import WatcherError


def _fake_process(text: str) -> MagicMock:
    proc = MagicMock()
    proc.stdout = io.StringIO(text)
    proc.poll.return_value = None
    proc.returncode = -9
    return proc


# ---------------------------------------------------------------------------
# parse_status_line
# ---------------------------------------------------------------------------

class TestParseStatusLine:
    @pytest.mark.parametrize("status", ["device", "offline", "disconnected"])
    def test_tracked_statuses(self, status):
        assert parse_status_line(f"emulator-5554\t{status}\n") == DeviceEvent(
            "emulator-5554", status
        )

    @pytest.mark.parametrize("line", [
        "",
        "   ",
        "no-tab-here device",
        "abc\tunauthorized",
        "\tdevice",
    ])
    def test_ignored_lines(self, line):
        assert parse_status_line(line) is None


# ---------------------------------------------------------------------------
# DeviceWatcher
# ---------------------------------------------------------------------------

class TestDeviceWatcher:
    def test_events_are_queued_in_order(self, config):
        proc = _fake_process("a\tdevice\ngarbage\nb\toffline\n")
        with patch("gadget.bridge.tracking.subprocess.Popen", return_value=proc) as popen:
            watcher = DeviceWatcher(config)
            watcher.start()
            first = watcher.wait_event(timeout=2)
            second = watcher.wait_event(timeout=2)

        assert popen.call_args[0][0] == [str(config.adb_path), "track-devices"]
        assert first == DeviceEvent("a", "device")
        assert second == DeviceEvent("b", "offline")

    def test_closes_when_stream_ends(self, config):
        proc = _fake_process("")
        with patch("gadget.bridge.tracking.subprocess.Popen", return_value=proc):
            watcher = DeviceWatcher(config)
            watcher.start()
            assert watcher.wait_event(timeout=2) is None

        assert watcher.closed
        proc.kill.assert_called_once()
        proc.wait.assert_called()

    def test_queued_events_survive_close(self, config):
        proc = _fake_process("a\tdevice\n")
        with patch("gadget.bridge.tracking.subprocess.Popen", return_value=proc):
            watcher = DeviceWatcher(config)
            watcher.start()
            watcher._thread.join(timeout=2)

        assert watcher.closed
        assert watcher.wait_event(timeout=1) == DeviceEvent("a", "device")
        assert watcher.wait_event(timeout=1) is None

    def test_full_queue_drops_events(self, config):
        config = config.model_copy(update={"watcher_send_timeout_s": 0.0})
        proc = _fake_process("".join(f"d{i}\tdevice\n" for i in range(5)))
        with patch("gadget.bridge.tracking.subprocess.Popen", return_value=proc):
            watcher = DeviceWatcher(config, queue_size=2)
            watcher.start()
            watcher._thread.join(timeout=2)

        assert [e.identifier for e in watcher.drain()] == ["d0", "d1"]
        assert watcher.dropped == 3

    def test_spawn_failure(self, config):
        with patch("gadget.bridge.tracking.subprocess.Popen", side_effect=OSError("no adb")):
            watcher = DeviceWatcher(config)
            with pytest.raises(WatcherError, match="no adb"):
                watcher.start()
        assert watcher.closed

    def test_stop_kills_running_process(self, config):
        release = threading.Event()

        class BlockingStream:
            def __iter__(self):
                release.wait(2)
                return iter(())

        proc = MagicMock()
        proc.stdout = BlockingStream()
        proc.poll.return_value = None
        proc.kill.side_effect = lambda: release.set()

        with patch("gadget.bridge.tracking.subprocess.Popen", return_value=proc):
            watcher = DeviceWatcher(config)
            watcher.start()
            watcher.stop()

        assert proc.kill.called
        assert watcher.closed

    def test_drain_empty(self, config):
        assert DeviceWatcher(config).drain() == []
