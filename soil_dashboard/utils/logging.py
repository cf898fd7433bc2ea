"""
Logging setup for the soil report dashboard.

The CLI and the Streamlit app each call ``configure_logging(config.logging)``
once at start-up. Library modules only ever do
``logger = logging.getLogger(__name__)``.

With ``json_format = true`` under ``[logging]`` every record is written as
one JSON line, with ``extra=`` fields lifted to the top level::

    {"ts": "2024-03-20T09:30:00Z", "level": "INFO", "logger": "soil_dashboard.pipeline.ingest",
     "msg": "Report SR-1042-LAB7 stored", "report_id": "SR-1042-LAB7"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from soil_dashboard.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# openpyxl warns about every unsupported workbook extension at INFO.
_QUIET_LOGGERS = ("openpyxl", "streamlit", "watchdog")

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``, extras."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line = {
            "ts": created.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def build_formatter(json_format: bool) -> logging.Formatter:
    """Return the line formatter for the configured output style."""
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def configure_logging(config: "LoggingConfig") -> None:
    """Point the root logger at stdout and, if configured, a log file.

    Calling it again replaces the previous handlers.
    """
    level = logging.getLevelName(config.level)
    formatter = build_formatter(config.json_format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_file = Path(config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
