"""
Logging configuration.

Logs are written to stdout as structured JSON, one object per line, so they
can be shipped to any log collector without parsing. Fields passed through
``extra=`` at the call site are included in the JSON object.
"""

import json
import logging
import os
from datetime import UTC, datetime


# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A JSON string representing the log record.
        """
        log_object = {
            "timestamp": datetime.now(UTC).isoformat(),
            "severity": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_object[key] = value

        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_object, default=str)


def setup_global_logging() -> None:
    """
    Configure global logging.

    Installs a single stdout handler with JsonFormatter on the root logger.
    The level is taken from LOG_LEVEL (default INFO).
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    # Replace existing handlers to avoid duplicate logs
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
