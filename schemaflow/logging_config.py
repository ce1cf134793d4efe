"""
SchemaFlow Logging Configuration

Parse diagnostics go to the ``schemaflow`` logger tree on stderr, either as
colored text for people or as one JSON object per line for editor plugins
and CI jobs. Call sites attach context with ``extra=``; the recognised keys
are listed in CONTEXT_LABELS.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

LOGGER_NAME = "schemaflow"

# extra= key -> label used in text output
CONTEXT_LABELS = {
    "table_name": "table",
    "dialect": "dialect",
    "line": "line",
    "file_path": "file",
    "statement": "stmt",
}

VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def level_for_verbosity(verbose: int) -> int:
    """0 -> WARNING, 1 -> INFO, 2 or more -> DEBUG."""
    return VERBOSITY_LEVELS[max(0, min(verbose, len(VERBOSITY_LEVELS) - 1))]


def record_context(record: logging.LogRecord) -> dict:
    return {key: getattr(record, key) for key in CONTEXT_LABELS if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """``[LEVEL] message [table=..., dialect=...]`` with optional ANSI colors."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        context = record_context(record)
        suffix = ""
        if context:
            suffix = " [" + ", ".join(f"{CONTEXT_LABELS[key]}={value}" for key, value in context.items()) + "]"

        tag = f"[{level}]"
        if self.use_color and level in self.COLORS:
            tag = f"{self.COLORS[level]}{tag}{self.RESET}"
        return f"{tag} {record.getMessage()}{suffix}"


def setup_logging(
    verbose: int = 0,
    log_format: str = "text",
    no_color: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Configure and return the SchemaFlow logger.

    Args:
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_format: Output format - "text" or "json"
        no_color: Disable ANSI colors in text output
        stream: Destination, stderr by default

    Returns:
        Configured logger instance
    """
    level = level_for_verbosity(verbose)
    stream = stream or sys.stderr

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Repeated CLI invocations in one process must not stack handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        use_color = not no_color and stream.isatty()
        handler.setFormatter(ColoredFormatter(use_color=use_color))

    logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``get_logger("grammar")`` -> ``schemaflow.grammar``; no name -> the root ``schemaflow`` logger."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
