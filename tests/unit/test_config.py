"""Unit tests for gadget.config and gadget.registry."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError
from gadget.registry import (
    CATALOG,
    CATEGORY_ORDER,
    DEVICELESS_COMMANDS,
    catalog_categories,
    categorized_catalog,
    command_ids,
    find_entry,
)


# ---------------------------------------------------------------------------
# GadgetConfig
# ---------------------------------------------------------------------------

class TestGadgetConfig:
    def test_from_env_android_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ANDROID_HOME", str(tmp_path / "sdk"))
        monkeypatch.delenv("ANDROID_SDK_ROOT", raising=False)
        config = GadgetConfig.from_env()
        assert config.android_home == tmp_path / "sdk"
        assert config.adb_path == tmp_path / "sdk" / "platform-tools" / "adb"
        assert config.emulator_path == tmp_path / "sdk" / "emulator" / "emulator"

    def test_from_env_sdk_root_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("ANDROID_HOME", raising=False)
        monkeypatch.setenv("ANDROID_SDK_ROOT", str(tmp_path))
        assert GadgetConfig.from_env().android_home == tmp_path

    def test_from_env_media_and_avd(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GADGET_MEDIA_PATH", str(tmp_path / "shots"))
        monkeypatch.setenv("ANDROID_AVD_HOME", str(tmp_path / "avds"))
        config = GadgetConfig.from_env()
        assert config.media_path == tmp_path / "shots"
        assert config.avd_home == tmp_path / "avds"

    def test_defaults(self, tmp_path):
        config = GadgetConfig(android_home=tmp_path)
        assert config.adb_static_port == 4444
        assert config.log_capacity == 5
        assert config.refresh_interval_s == 10.0
        assert config.emulator_refresh_delay_s == 30.0
        assert config.media_path == Path.home() / "Downloads"

    def test_rejects_bad_port(self, tmp_path):
        with pytest.raises(ValidationError):
            GadgetConfig(android_home=tmp_path, adb_static_port=70000)

    def test_check_adb(self, config, tmp_path):
        config.check_adb()
        missing = GadgetConfig(android_home=tmp_path / "nowhere")
        with pytest.raises(BridgeError, match="ADB not found"):
            missing.check_adb()


# ---------------------------------------------------------------------------
# Command catalog
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_catalog_size_and_unique_ids(self):
        ids = command_ids()
        assert len(ids) == 12
        assert len(set(ids)) == 12

    def test_categories_in_display_order(self):
        names = [c.name for c in catalog_categories()]
        assert names == list(CATEGORY_ORDER)

    def test_categorized_catalog_order(self):
        assert [e.id for e in categorized_catalog()][:3] == [
            "screenshot", "screenshot-day-night", "screen-record",
        ]
        assert categorized_catalog()[-1].id == "refresh-devices"

    def test_find_entry(self):
        assert find_entry("change-dpi").name == "DPI"
        assert find_entry("missing") is None

    def test_deviceless_commands_exist(self):
        assert DEVICELESS_COMMANDS <= {e.id for e in CATALOG}
