"""
Process-wide logging setup driven by ``LoggingConfig``.

Every module logs through ``logging.getLogger(__name__)``; this function only
decides where records go (console and an optional log file) and in which
format. Calling it twice replaces the handlers instead of duplicating them.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from yield_forecaster.config import LoggingConfig

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message (+ exc_info)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: LoggingConfig, log_to_file: bool = True) -> logging.Logger:
    """Configure the ``yield_forecaster`` logger hierarchy.

    Args:
        config:      Validated logging settings.
        log_to_file: Also write to ``config.log_file`` (parent dirs created).

    Returns:
        The package root logger.
    """
    root = logging.getLogger("yield_forecaster")
    root.setLevel(getattr(logging, config.level))
    root.handlers = []
    root.propagate = False

    if config.json_format:
        formatter: logging.Formatter = JsonLineFormatter()
    else:
        formatter = logging.Formatter(_PLAIN_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, config.level))
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_to_file and config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
