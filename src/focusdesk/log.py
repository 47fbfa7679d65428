"""Logging setup: the `focusdesk` logger plus an in-memory buffer of recent records."""

import logging
from collections import deque
from datetime import datetime
from typing import Deque

logger = logging.getLogger("focusdesk")
logger.setLevel(logging.INFO)

# Circular buffer to store recent log entries (max 100)
log_buffer: Deque[dict] = deque(maxlen=100)


class LogBufferHandler(logging.Handler):
    """Logging handler that captures records to the circular buffer."""

    def emit(self, record: logging.LogRecord):
        try:
            log_entry = {
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "logger": record.name,
                "message": self.format(record),
            }
            log_buffer.append(log_entry)
        except Exception:
            self.handleError(record)


buffer_handler = LogBufferHandler()
buffer_handler.setLevel(logging.DEBUG)
buffer_handler.setFormatter(logging.Formatter("%(message)s"))
logger.addHandler(buffer_handler)

# Also capture uvicorn and fastapi logs
logging.getLogger("uvicorn").addHandler(buffer_handler)
logging.getLogger("fastapi").addHandler(buffer_handler)


def configure_logging(level: str = "INFO") -> None:
    """Set the package log level and attach a console handler once."""
    logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, LogBufferHandler)
               for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(console)


def recent_logs(limit: int = 50) -> list[dict]:
    """Most recent buffered records, oldest first."""
    if limit <= 0:
        return []
    return list(log_buffer)[-limit:]
