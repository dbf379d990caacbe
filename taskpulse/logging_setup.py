"""
Logging setup for the Taskpulse service.

Provides structured JSON logging on stdout. Modules log through
``logging.getLogger(__name__)``; this module only configures handlers.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes present on every LogRecord; anything else was passed via ``extra=``
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a single JSON stdout handler.

    Args:
        level: Logging level name (e.g. "INFO", "DEBUG")

    Calling it again replaces the handler instead of adding a duplicate.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Prevent adding handlers multiple times
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter())
    root.addHandler(console_handler)

    # Keep access logs and SQL echo at warning level unless debugging
    if root.level > logging.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
