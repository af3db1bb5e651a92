"""Unit tests for gadget.emulator AVD discovery and launch."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gadget import emulator
from gadget.emulator import Avd, find_avd, list_avds, parse_avd_config
from gadget.exceptions import EmulatorError

CONFIG_INI = """\
AvdId = Pixel_7_API_34
avd.ini.displayname = Pixel 7 API 34
abi.type = arm64-v8a
hw.cpu.arch = arm64
hw.lcd.width = 1080
hw.lcd.height = 2400
image.sysdir.1 = system-images/android-34/google_apis/arm64-v8a/
"""


@pytest.fixture()
def avd_home(config) -> Path:
    home = config.avd_home
    avd_dir = home / "Pixel_7_API_34.avd"
    avd_dir.mkdir(parents=True)
    (avd_dir / "config.ini").write_text(CONFIG_INI)
    (home / "Pixel_7_API_34.ini").write_text(
        f"avd.ini.encoding=UTF-8\npath={avd_dir}\ntarget=android-34\n"
    )
    # Pointer without a path= line falls back to <home>/<name>.avd
    (home / "Bare.ini").write_text("target=android-30\n")
    (home / "notes.txt").write_text("ignored")
    return home


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseAvdConfig:
    def test_details(self):
        details = parse_avd_config(CONFIG_INI)
        assert details == {
            "display_name": "Pixel 7 API 34",
            "architecture": "arm64-v8a",
            "api_level": "34",
            "resolution": "1080x2400",
        }

    def test_comments_and_blank_lines(self):
        assert parse_avd_config("# comment\n\nnot a pair\n") == {}


class TestAvdModel:
    def test_str_with_details(self, tmp_path):
        avd = Avd(name="p7", path=tmp_path, display_name="Pixel 7", api_level="34",
                  architecture="arm64-v8a", resolution="1080x2400")
        assert str(avd) == "Pixel 7 (API 34 • arm64-v8a • 1080x2400)"

    def test_str_name_only(self, tmp_path):
        assert str(Avd(name="bare", path=tmp_path)) == "bare"

    def test_config_path(self, tmp_path):
        assert Avd(name="x", path=tmp_path).config_path == tmp_path / "config.ini"


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

class TestListAvds:
    def test_discovers_ini_files(self, config, avd_home):
        avds = list_avds(config)
        assert [a.name for a in avds] == ["Bare", "Pixel_7_API_34"]
        bare, pixel = avds
        assert bare.path == avd_home / "Bare.avd"
        assert bare.target == "android-30"
        assert pixel.display_name == "Pixel 7 API 34"
        assert pixel.api_level == "34"

    def test_missing_directory(self, config):
        with pytest.raises(EmulatorError, match="failed to read AVD directory"):
            list_avds(config)

    def test_find_by_name_or_display_name(self, config, avd_home):
        assert find_avd(config, "Pixel_7_API_34").name == "Pixel_7_API_34"
        assert find_avd(config, "Pixel 7 API 34").name == "Pixel_7_API_34"

    def test_find_unknown(self, config, avd_home):
        with pytest.raises(EmulatorError) as exc_info:
            find_avd(config, "Nexus")
        assert "Bare" in exc_info.value.detail


# ---------------------------------------------------------------------------
# Launch / configure
# ---------------------------------------------------------------------------

class TestLaunch:
    def test_launch_detached(self, config, tmp_path, capsys):
        avd = Avd(name="Pixel_7", path=tmp_path)
        proc = MagicMock(pid=4321)
        with patch("gadget.emulator.subprocess.Popen", return_value=proc) as popen:
            assert emulator.launch_emulator(config, avd) == 4321

        args, kwargs = popen.call_args
        assert args[0] == [str(config.emulator_path), "-avd", "Pixel_7", "-dns-server", "8.8.8.8"]
        assert kwargs["start_new_session"] is True
        assert "Launched emulator: Pixel_7 (PID: 4321)" in capsys.readouterr().out

    def test_launch_failure(self, config, tmp_path):
        avd = Avd(name="Pixel_7", path=tmp_path)
        with patch("gadget.emulator.subprocess.Popen", side_effect=FileNotFoundError("emulator")):
            with pytest.raises(EmulatorError, match="failed to launch emulator"):
                emulator.launch_emulator(config, avd)


class TestConfigure:
    def test_editor_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EDITOR", "code --wait")
        assert emulator.editor_command(tmp_path / "config.ini") == [
            "code", "--wait", str(tmp_path / "config.ini"),
        ]

    def test_editor_defaults_to_vi(self, monkeypatch, tmp_path):
        monkeypatch.delenv("EDITOR", raising=False)
        assert emulator.editor_command(tmp_path / "c.ini")[0] == "vi"

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(EmulatorError, match="config file not found"):
            emulator.configure_emulator(Avd(name="x", path=tmp_path))

    def test_editor_failure(self, tmp_path, monkeypatch):
        (tmp_path / "config.ini").write_text("a = b\n")
        monkeypatch.setenv("EDITOR", "vi")
        with patch("gadget.emulator.subprocess.run", return_value=MagicMock(returncode=2)):
            with pytest.raises(EmulatorError, match="exited with code 2"):
                emulator.configure_emulator(Avd(name="x", path=tmp_path))
