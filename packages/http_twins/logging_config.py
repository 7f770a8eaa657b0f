"""Logging configuration.

- JSON output for production (machine-readable)
- Human-readable output for development

Dispatch outcomes and fallback entries attach structured fields through
``extra=``; the JSON formatter serializes them, the text formatter keeps
the message only.

## Usage

    from http_twins.logging_config import setup_logging

    setup_logging()  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

STRUCTURED_FIELDS = (
    "destination_kind",
    "destination",
    "succeeded",
    "failure",
    "error_detail",
    "status_code",
    "elapsed_ms",
    "method",
    "uri",
    "headers",
    "body",
)


class JSONFormatter(logging.Formatter):
    """
    Output format:
    {"ts": "...", "level": "...", "logger": "...", "message": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Output format:
    12:34:56 INFO    [coordinator    ] Message
    """

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.now().strftime("%H:%M:%S")
        module = record.name.split(".")[-1][:15]
        line = f"{time_str} {record.levelname:7} [{module:15}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
               Defaults to HTTP_TWINS_LOG_LEVEL or INFO.
        format_type: Output format (json, text).
                     Defaults to HTTP_TWINS_LOG_FORMAT or text.
    """
    log_level = (level or os.environ.get("HTTP_TWINS_LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("HTTP_TWINS_LOG_FORMAT", "text")).lower()

    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    root.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={log_level}, format={log_format}"
    )
