"""
Tests for logging setup.
"""

import json
import logging

import pytest

from kmetrics.logging_config import HumanReadableFormatter, StructuredFormatter, setup_logging


@pytest.fixture
def restore_logging():
    """Remove the handlers setup_logging added and restore logger levels."""
    names = ["", "kmetrics.telemetry", "kmetrics.api"]
    saved = {
        name: (list(logging.getLogger(name).handlers), logging.getLogger(name).level)
        for name in names
    }
    yield
    for name, (handlers, level) in saved.items():
        target = logging.getLogger(name)
        for handler in list(target.handlers):
            if handler not in handlers:
                target.removeHandler(handler)
                handler.close()
        target.setLevel(level)


def _record(name="kmetrics.test", level=logging.INFO, msg="hello"):
    return logging.LogRecord(name, level, __file__, 10, msg, None, None, func="fn")


class TestFormatters:
    """Test log formatters."""

    def test_structured(self):
        payload = json.loads(StructuredFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "kmetrics.test"
        assert payload["message"] == "hello"

    def test_colors_do_not_leak(self):
        record = _record(level=logging.WARNING)

        colored = HumanReadableFormatter(use_colors=True).format(record)
        plain = HumanReadableFormatter().format(record)

        assert "\033[33m" in colored
        assert "\033[" not in plain
        assert record.levelname == "WARNING"


class TestSetupLogging:
    """Test setup_logging."""

    def test_log_streams(self, tmp_path, restore_logging):
        setup_logging(log_dir=str(tmp_path), console_level="WARNING")

        logging.getLogger("kmetrics.telemetry.scheduler").info("tick")
        logging.getLogger("kmetrics.api").info("request")
        logging.getLogger("kmetrics.config").error("broken")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "tick" in (tmp_path / "collection.log").read_text()
        assert "request" in (tmp_path / "api-access.log").read_text()
        assert "broken" in (tmp_path / "error.log").read_text()
        main_log = (tmp_path / "kmetrics.log").read_text()
        assert "tick" in main_log
        assert "broken" in main_log

    def test_third_party_quieted(self, tmp_path, restore_logging):
        setup_logging(log_dir=str(tmp_path))

        assert logging.getLogger("kubernetes").level == logging.WARNING
        assert logging.getLogger("influxdb_client").level == logging.WARNING
