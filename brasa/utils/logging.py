"""
Centralized logging for the site generation worker.

Every message goes to Python logging and to an in-memory log buffer so
recent queue failures, provider warnings and credit errors can be inspected
without external log aggregation.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from brasa.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class LogEntry:
    level: LogLevel
    message: str
    source: str = "worker"
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "source": self.source,
            "metadata": self.metadata,
        }


class LogBuffer:
    """Bounded, thread-safe ring of the latest log entries (oldest dropped first)."""

    def __init__(self, max_size: int = 1000):
        self._entries: Deque[LogEntry] = deque(maxlen=max_size)
        self._lock = Lock()

    def add(self, entry: LogEntry):
        with self._lock:
            self._entries.append(entry)

    def get_recent(self, limit: int = 100, level: Optional[LogLevel] = None) -> List[Dict[str, Any]]:
        """Newest first, optionally restricted to one level."""
        with self._lock:
            entries = [e for e in reversed(self._entries) if level is None or e.level == level]
        return [e.to_dict() for e in entries[:limit]]

    def get_warnings(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self.get_recent(limit=limit, level=LogLevel.WARNING)

    def clear(self):
        with self._lock:
            self._entries.clear()


_log_buffer = LogBuffer(max_size=config.LOG_BUFFER_SIZE)


def get_log_buffer() -> LogBuffer:
    return _log_buffer


def configure_logging(level: Optional[str] = None):
    """Configure root logging for the worker process."""
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


class AppLogger:
    """
    Logs to Python logging under brasa.<source> and to the shared buffer.

    Keyword arguments become structured metadata:
        queue_logger.info("Job claimed", job_id=job.id, attempt=job.attempts)
    """

    def __init__(self, source: str):
        self.source = source
        self._logger = logging.getLogger(f"brasa.{source}")

    def _log(self, level: LogLevel, message: str, metadata: Dict[str, Any]):
        _log_buffer.add(LogEntry(level, message, self.source, metadata))

        suffix = f" | {metadata}" if metadata else ""
        self._logger.log(getattr(logging, level.name), f"{message}{suffix}")

    def debug(self, message: str, **metadata):
        self._log(LogLevel.DEBUG, message, metadata)

    def info(self, message: str, **metadata):
        self._log(LogLevel.INFO, message, metadata)

    def warning(self, message: str, **metadata):
        self._log(LogLevel.WARNING, message, metadata)

    def error(self, message: str, **metadata):
        self._log(LogLevel.ERROR, message, metadata)

    def critical(self, message: str, **metadata):
        self._log(LogLevel.CRITICAL, message, metadata)


queue_logger = AppLogger("job_queue")
worker_logger = AppLogger("worker")
provider_logger = AppLogger("provider")
credit_logger = AppLogger("credits")
store_logger = AppLogger("store")
