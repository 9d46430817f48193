"""
Structured Logging
==================

JSON lines for production, plain text for development.

Lifecycle code attaches order context through `extra=`:

    logger.info("Suspended", extra={"order_id": 42, "server_id": 11})

Both formatters pick those fields up; the text formatter appends them
as key=value pairs.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO
import json
import logging
import sys


CONTEXT_FIELDS = ("order_id", "server_id", "location_id", "payment_id")
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Order context attached to a record."""
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """Output log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text with the order context appended."""

    def __init__(self):
        super().__init__(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line

        # Tracebacks stay last
        head, sep, tail = line.partition("\n")
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        return f"{head} [{pairs}]{sep}{tail}"


def configure_logging(level: str = "INFO", fmt: str = "json", stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: "json" for structured, anything else for plain text
        stream: Output stream, stdout by default

    Returns:
        The installed handler
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextTextFormatter())
    root.addHandler(handler)

    # Quiet noisy libraries
    for name in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler
