"""
Structured logging support for devserve.

Provides JSON-formatted logging when enabled via DEVSERVE_LOG_FORMAT=json.
Supervisor records carry structured fields (pid, port, outcome) that end up
as top-level keys in the JSON output.
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any

# LogRecord attributes that are not user-supplied extras
_RESERVED_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs in JSON format with structured fields:
    - timestamp: ISO 8601 timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - extra: Any additional fields from LogRecord (pid, port, outcome, ...)
    """

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z"

        log_entry: dict[str, Any] = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        if record.funcName and record.funcName != "<module>":
            log_entry["function"] = record.funcName

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_FIELDS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _handlers(log_file: str | None, formatter: logging.Formatter) -> list[logging.Handler]:
    # stderr so log lines never mix with command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            print(f"Warning: Could not open log file {log_file}: {e}", file=sys.stderr)
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
    return handlers


def is_json_logging_enabled() -> bool:
    """
    Check if JSON logging is enabled via environment variable.

    Returns:
        True if DEVSERVE_LOG_FORMAT=json, False otherwise
    """
    return os.getenv("DEVSERVE_LOG_FORMAT", "text").lower() == "json"


def setup_logging(level: str | None = None, log_file: str | None = None, force: bool = True) -> None:
    """
    Setup logging based on environment variables.

    Environment variables:
    - DEVSERVE_LOG_FORMAT: "json" or "text" (default: text)
    - DEVSERVE_LOG_LEVEL: Log level (default: WARNING)
    - DEVSERVE_LOG_FILE: Optional log file path

    Args:
        level: Override log level (uses DEVSERVE_LOG_LEVEL if None)
        log_file: Override log file (uses DEVSERVE_LOG_FILE if None)
        force: Force reconfiguration of root logger
    """
    if level is None:
        level = os.getenv("DEVSERVE_LOG_LEVEL", "WARNING")

    if log_file is None:
        log_file = os.getenv("DEVSERVE_LOG_FILE")

    if is_json_logging_enabled():
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    logging.basicConfig(
        level=level.upper(),
        handlers=_handlers(log_file, formatter),
        force=force,
    )
