"""Unit tests for gadget.utils.logging."""

from __future__ import annotations

import json

from gadget.utils.logging import get_logger, setup_logging


def _lines(path) -> list[str]:
    # Reconfiguring closes the previous log file
    setup_logging(level="WARNING")
    return path.read_text(encoding="utf-8").splitlines()


class TestLogging:
    def test_module_logger_writes_events(self, tmp_path):
        log_file = tmp_path / "logs" / "gadget.log"
        setup_logging(level="INFO", log_file=log_file)
        get_logger(__name__).info("device_listed", count=2)

        lines = _lines(log_file)
        assert len(lines) == 1
        assert "device_listed" in lines[0]
        assert "count=2" in lines[0]
        assert __name__ in lines[0]

    def test_json_records(self, tmp_path):
        log_file = tmp_path / "gadget.log"
        setup_logging(level="DEBUG", json_output=True, log_file=log_file)
        get_logger("gadget.tui.controller").debug("session_log", severity="info")

        record = json.loads(_lines(log_file)[0])
        assert record["event"] == "session_log"
        assert record["level"] == "debug"
        assert record["logger_name"] == "gadget.tui.controller"

    def test_level_filters(self, tmp_path):
        log_file = tmp_path / "gadget.log"
        setup_logging(level="WARNING", log_file=log_file)
        logger = get_logger(__name__)
        logger.info("too_quiet")
        logger.warning("loud_enough")

        lines = _lines(log_file)
        assert len(lines) == 1
        assert "loud_enough" in lines[0]

    def test_logger_created_before_setup_follows_configuration(self, tmp_path):
        logger = get_logger(__name__)
        log_file = tmp_path / "gadget.log"
        setup_logging(level="INFO", log_file=log_file)
        logger.info("late_binding")
        assert "late_binding" in _lines(log_file)[0]
