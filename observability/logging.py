"""Logging setup for the EdBrief pipeline.

Every record is tagged with the id of the pipeline run that produced it, so
one digest run can be followed through search, scrape, generation and
delivery in a shared log file.

Output:
    text: 08:15:02 [INFO] [3fa2c1d0] pipeline: Search complete | results=25
    json: {"timestamp": "...", "level": "INFO", "run_id": "3fa2c1d0", ...}

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context("3fa2c1d0")
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

LOG_FILENAME = "edbrief.log"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("aiohttp", "asyncio", "httpx", "httpcore", "openai", "google_genai")

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")

# Standard LogRecord attributes, excluded from JSON "extra" fields
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "run_id", "taskName"}


def set_run_context(run_id: str) -> None:
    """Tag subsequent log records in this context with ``run_id``."""
    run_id_var.set(run_id)


def clear_context() -> None:
    run_id_var.set("-")


class RunContextFilter(logging.Filter):
    """Injects the current run id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log aggregation.

    Warnings and errors carry their source location; ``extra=`` fields are
    copied through (stringified when not JSON-serializable).
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "run_id": getattr(record, "run_id", "-"),
            "message": record.getMessage(),
        }
        if record.levelno >= logging.WARNING:
            data["source"] = f"{record.filename}:{record.lineno}"
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            try:
                json.dumps(value)
                data[key] = value
            except (TypeError, ValueError):
                data[key] = str(value)

        return json.dumps(data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Format: TIME [LEVEL] [run_id] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _file_handler(config: Any) -> logging.Handler:
    log_file = config.log_dir / LOG_FILENAME
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure console and rotating file logging.

    Falls back to console-only logging when the log directory is not
    writable.

    Args:
        config: Configuration with log_dir, log_level, log_format,
            log_max_bytes and log_backup_count
        verbose: Force DEBUG on the console

    Returns:
        True if file logging is enabled
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    context_filter = RunContextFilter()

    if config.log_format == "json":
        console_fmt: logging.Formatter = JsonFormatter()
        file_fmt: logging.Formatter = JsonFormatter()
    else:
        console_fmt = TextFormatter()
        file_fmt = TextFormatter(include_date=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)
    root.addHandler(console)

    file_logging = False
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        handler = _file_handler(config)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(file_fmt)
        handler.addFilter(context_filter)
        root.addHandler(handler)
        file_logging = True
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return file_logging
