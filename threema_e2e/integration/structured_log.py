"""Structured JSON logging for applications embedding the library."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO


ROOT_LOGGER = "threema_e2e"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Audit events attach their fields here
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def configure_logging(level: int = logging.INFO,
                      stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Send all library logs to ``stream`` (stdout by default) as JSON lines.

    Calling it again does not add a second handler.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(level)

    return logger
