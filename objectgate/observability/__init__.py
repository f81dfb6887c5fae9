"""
Observability module: structured logging.
"""

from objectgate.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    log_context,
    setup_logging,
)

__all__ = [
    "JsonFormatter",
    "LogLevel",
    "StructuredLogger",
    "log_context",
    "setup_logging",
]
