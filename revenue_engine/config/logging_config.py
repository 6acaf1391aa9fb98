"""Logging setup for billing runs.

Records carry the LogContext fields of the run (``run_id``) and of the
project-month being billed (``project_id``, ``month``). The text format
tags each line with the project-month; the JSON format writes the context
fields as top-level keys and every other ``extra`` under ``"extra"``, with
Decimal amounts kept exact as strings.
"""

import datetime as dt
import enum
import json
import logging
import logging.handlers
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

#: Context fields promoted to top-level JSON keys, in output order.
CONTEXT_FIELDS = ("run_id", "project_id", "month")

#: Third-party loggers that are chatty at INFO when reading spreadsheets.
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "google.auth", "urllib3")

_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "context_tag"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def _context_value(key: str, value: Any) -> Any:
    # Months travel as first-of-month dates but are read as YYYY-MM
    if key == "month" and isinstance(value, dt.date):
        return f"{value:%Y-%m}"
    return value


class BillingJSONFormatter(logging.Formatter):
    """One JSON object per record.

    Example output::

        {"timestamp": "...", "level": "INFO", "logger": "revenue_engine...",
         "message": "...", "project_id": "P-1", "month": "2026-01",
         "extra": {"billed_hours": "10.50"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = _context_value(key, value)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=_json_default)


class ProjectMonthFormatter(logging.Formatter):
    """Text formatter that tags records with ``[project month]`` when billing."""

    FORMAT = "%(asctime)s - %(levelname)s - %(name)s%(context_tag)s - %(message)s"

    def __init__(self):
        super().__init__(fmt=self.FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            str(_context_value(key, getattr(record, key)))
            for key in ("project_id", "month")
            if getattr(record, key, None) is not None
        ]
        record.context_tag = f" [{' '.join(parts)}]" if parts else ""
        return super().format(record)


class LoggingConfig:
    """
    Logging options of a billing run.

    Attributes:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: 'text' or 'json'
        log_file: Also write to this rotating file when set
        console: Write to stderr
        max_file_size: Rotate the file after this many bytes
        backup_count: Rotated files to keep
        quiet_loggers: Loggers held at WARNING regardless of the level
    """

    VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    VALID_FORMATS = ("text", "json")

    def __init__(
        self,
        log_level: str = "INFO",
        log_format: str = "text",
        log_file: Optional[str] = None,
        console: bool = True,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        quiet_loggers: Tuple[str, ...] = QUIET_LOGGERS,
    ):
        """
        Raises:
            ValueError: If the level or format is unknown, or no output
                is left
        """
        level = log_level.upper()
        if level not in self.VALID_LEVELS:
            raise ValueError(
                f"Invalid log level: {log_level}. "
                f"Must be one of {', '.join(self.VALID_LEVELS)}"
            )
        log_format = log_format.lower()
        if log_format not in self.VALID_FORMATS:
            raise ValueError(
                f"Invalid log format: {log_format}. "
                f"Must be one of {', '.join(self.VALID_FORMATS)}"
            )
        if not console and not log_file:
            raise ValueError("Logging needs console output or a log_file")

        self.log_level = level
        self.log_format = log_format
        self.log_file = log_file
        self.console = console
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.quiet_loggers = quiet_loggers

    @classmethod
    def from_env(cls, log_level: Optional[str] = None) -> "LoggingConfig":
        """
        Read the logging options from the environment.

        Environment Variables:
            LOG_LEVEL: Level (default: INFO); ``log_level`` takes precedence
            LOG_FORMAT: text or json (default: text)
            LOG_FILE: Rotating log file
            LOG_CONSOLE: Write to stderr (default: true)
            LOG_MAX_FILE_SIZE, LOG_BACKUP_COUNT: Rotation limits
        """
        return cls(
            log_level=log_level or os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            log_file=os.getenv("LOG_FILE") or None,
            console=os.getenv("LOG_CONSOLE", "true").lower() == "true",
            max_file_size=int(os.getenv("LOG_MAX_FILE_SIZE", str(10 * 1024 * 1024))),
            backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
        )

    def build_formatter(self) -> logging.Formatter:
        if self.log_format == "json":
            return BillingJSONFormatter()
        return ProjectMonthFormatter()


def configure_logging(config: LoggingConfig) -> None:
    """
    Install the handlers of ``config`` on the root logger.

    Handlers from an earlier call are replaced. Each handler copies the
    active LogContext onto its records.
    """
    from revenue_engine.utils.logging_utils import _ContextFilter

    reset_logging()
    root_logger = logging.getLogger()
    level = getattr(logging, config.log_level)
    root_logger.setLevel(level)

    handlers = []
    if config.console:
        handlers.append(logging.StreamHandler())
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=config.log_file,
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
            )
        )

    formatter = config.build_formatter()
    context_filter = _ContextFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def reset_logging() -> None:
    """Remove the root handlers and restore the WARNING default."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.WARNING)
