# timetrack/core/logging_config.py
"""
Logging configuration for Timetrack.

Production writes JSON lines to rotating files (app.log, error.log) and
WARNING+ to stdout. Development logs coloured, human readable lines to the
console plus a plain rotating app.log.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

IS_PRODUCTION = os.getenv("PRODUCTION", "false").lower() == "true"

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG").upper()

APP_LOG_FILE = LOG_DIR / "app.log"
ERROR_LOG_FILE = LOG_DIR / "error.log"

# Third-party loggers and the level they are capped at
_NOISY_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "uvicorn.error": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "urllib3": logging.WARNING,
}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation tools.

    Structured context passed as extra={"extra_fields": {...}} is merged
    into the top level of the object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "service": "timetrack",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)
            if "duration" in extra_fields:
                log_data["duration_ms"] = log_data.pop("duration")

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Colours the level name for console output in development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """
    Configure the root logger for the application.

    Safe to call more than once: existing root handlers are replaced.
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)
    root_logger.handlers.clear()

    if IS_PRODUCTION:
        json_formatter = JSONFormatter()
        handlers = [
            _rotating_handler(APP_LOG_FILE, logging.INFO, json_formatter, 10_000_000, 5),
            _rotating_handler(ERROR_LOG_FILE, logging.ERROR, json_formatter, 10_000_000, 10),
            _console_handler(logging.WARNING, json_formatter),
        ]
    else:
        handlers = [
            _console_handler(
                logging.DEBUG,
                ColoredFormatter(
                    fmt="%(levelname)-8s %(asctime)s [%(name)s] %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                ),
            ),
            _rotating_handler(
                APP_LOG_FILE,
                logging.DEBUG,
                logging.Formatter("%(levelname)s %(asctime)s [%(name)s:%(lineno)d] %(message)s"),
                5_000_000,
                2,
            ),
        ]

    for handler in handlers:
        root_logger.addHandler(handler)

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        f"Logging configured (production={IS_PRODUCTION}, level={LOG_LEVEL})",
        extra={"extra_fields": {"log_dir": str(LOG_DIR.absolute()), "production": IS_PRODUCTION}},
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, typically get_logger(__name__)."""
    return logging.getLogger(name)
