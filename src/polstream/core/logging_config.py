"""
Polarization Stream Processing Engine - Logging

Stage threads log with ``extra={"stage": ...}`` and errors log their
``to_dict()``. The JSON formatter lifts those pipeline fields to the top level
of each entry and nests everything else under ``context``; console lines are
tagged with the stage name.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

# =============================================================================
# Record Fields
# =============================================================================

# Top-level keys of a JSON entry, in output order
PIPELINE_FIELDS = ("stage", "error_kind", "retryable", "error_message")

# Throughput records from log_throughput
METRIC_FIELDS = ("metric_name", "metric_type", "value", "unit")

_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class StageFieldFilter(logging.Filter):
    """Gives records without a stage the placeholder ``-``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "stage"):
            record.stage = "-"
        return True


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """JSON lines for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        for key in PIPELINE_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != "-":
                entry[key] = value

        if getattr(record, "metric_type", None) is not None:
            entry["metric"] = {key: getattr(record, key, None) for key in METRIC_FIELDS}

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in PIPELINE_FIELDS and key not in METRIC_FIELDS
        }
        if context:
            entry["context"] = context

        if record.pathname:
            entry["file"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter with ANSI-colored level names."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


# =============================================================================
# Setup
# =============================================================================

_initialized = False

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - [%(stage)s] %(threadName)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str | int = "INFO",
    log_file: str | None = None,
    structured: bool = False,
    colored: bool = True,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger once per process; later calls are ignored.

    Args:
        level: Level name or number
        log_file: Optional rotating JSON log file
        structured: JSON lines on the console instead of text
        colored: Color level names when stdout is a terminal
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep
    """
    global _initialized
    if _initialized:
        return

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(StageFieldFilter())

    if structured:
        console_handler.setFormatter(StructuredFormatter())
    elif colored and sys.stdout.isatty():
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, _DATE_FORMAT))
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, _DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    _initialized = True

    root_logger.info(
        "Logging initialized",
        extra={"log_level": logging.getLevelName(level), "log_file": log_file},
    )


# =============================================================================
# Throughput
# =============================================================================


def log_throughput(
    logger: logging.Logger, metric_name: str, value: float, unit: str, **extra
) -> None:
    """Log a per-stage rate, e.g. ``log_throughput(logger, "ingest", 1525.9, "samples/s")``."""
    logger.info(
        f"Throughput: {metric_name} = {value:.2f} {unit}",
        extra={
            "stage": metric_name,
            "metric_name": metric_name,
            "value": value,
            "unit": unit,
            "metric_type": "throughput",
            **extra,
        },
    )
