# src/logging/logger.py — v1
"""Logger factory with JSON and text formatters.

Both formatters stamp each line with the session, scope, file and pipeline
stage held in the logging context, so interleaved lines from concurrent
files in a batch can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from photoingest.logging.context import LogContext, get_context

# Third-party loggers that are chatty at INFO (HTTP requests, image plugins).
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "anthropic", "PIL")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(get_context().as_dict())

        if getattr(record, "data", None):
            entry["data"] = record.data  # type: ignore[attr-defined]

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Terminal format: time, level, logger, then <session> [file] (stage)."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            _timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
            *_context_tags(get_context()),
            f"- {record.getMessage()}",
        ]
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _context_tags(ctx: LogContext) -> list[str]:
    tags: list[str] = []
    if ctx.session_id:
        tags.append(f"<{ctx.session_id[:8]}>")
    if ctx.filename:
        tags.append(f"[{ctx.filename}]")
    if ctx.stage:
        tags.append(f"({ctx.stage})")
    return tags


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Configuration is applied by setup_logging()."""
    return logging.getLogger(f"photoingest.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    quiet: tuple[str, ...] = NOISY_LOGGERS,
) -> None:
    """Configure the photoingest logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" for log shipping, "text" for terminals.
        log_file: Rotating log file path. None logs to stderr only.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        quiet: Third-party loggers raised to WARNING.
    """
    root_logger = logging.getLogger("photoingest")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Re-init replaces handlers instead of stacking them
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()

    formatter: logging.Formatter = (
        JsonFormatter() if log_format == "json" else TextFormatter()
    )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_file:
        from photoingest.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(
            log_file, rotation=rotation, retention=retention
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
