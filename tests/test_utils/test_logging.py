"""
Tests for yield_forecaster/utils/logging.py.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from yield_forecaster.config import LoggingConfig
from yield_forecaster.utils.logging import JsonLineFormatter, configure_logging


@pytest.fixture(autouse=True)
def restore_package_logger():
    yield
    root = logging.getLogger("yield_forecaster")
    for handler in list(root.handlers):
        handler.close()
    root.handlers = []
    root.propagate = True
    root.setLevel(logging.NOTSET)


class TestConfigureLogging:
    def test_console_only(self):
        root = configure_logging(LoggingConfig(level="DEBUG"), log_to_file=False)
        assert root.name == "yield_forecaster"
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.propagate is False

    def test_file_handler_creates_parent(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        root = configure_logging(LoggingConfig(log_file=str(log_file)))
        logging.getLogger("yield_forecaster.ml.ridge").info("fitted %d rows", 12)
        for handler in root.handlers:
            handler.flush()
        assert "fitted 12 rows" in log_file.read_text(encoding="utf-8")

    def test_repeated_calls_replace_handlers(self, tmp_path):
        config = LoggingConfig(log_file=str(tmp_path / "a.log"))
        configure_logging(config)
        root = configure_logging(config)
        assert len(root.handlers) == 2


class TestJsonLineFormatter:
    def test_fields(self):
        record = logging.LogRecord(
            "yield_forecaster.cli", logging.WARNING, __file__, 1, "%s clipped", ("3",), None
        )
        payload = json.loads(JsonLineFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "yield_forecaster.cli"
        assert payload["message"] == "3 clipped"

    def test_exception_included(self):
        try:
            raise ValueError("bad pivot")
        except ValueError:
            record = logging.LogRecord(
                "yield_forecaster", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        payload = json.loads(JsonLineFormatter().format(record))
        assert "bad pivot" in payload["exc_info"]
