"""Utility modules for Brasa Forge."""

from brasa.utils.logging import (
    get_log_buffer,
    configure_logging,
    LogLevel,
    LogEntry,
    AppLogger,
    queue_logger,
    worker_logger,
    provider_logger,
    credit_logger,
    store_logger,
)

__all__ = [
    "get_log_buffer",
    "configure_logging",
    "LogLevel",
    "LogEntry",
    "AppLogger",
    "queue_logger",
    "worker_logger",
    "provider_logger",
    "credit_logger",
    "store_logger",
]
