"""
Structured Logging: JSON Lines with Request Context

Provides:
- One JSON object per log line (@timestamp, level, logger, message, extras)
- Request-scoped fields (request id, bucket, key) bound with `log_context`
  and carried across awaits by a ContextVar
- `StructuredLogger`, a LoggerAdapter taking fields as keyword arguments
- `setup_logging` for process start

Gateway modules log through plain `logging.getLogger(__name__)`; the
formatter picks up the bound context for them too.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional, TextIO, Tuple, Union


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, value: Union[str, int, LogLevel]) -> LogLevel:
        """Level from a name (any case) or a numeric value."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        return cls(value)


# Fields bound by log_context() for the current task
_bound_fields: ContextVar[Mapping[str, Any]] = ContextVar("objectgate_log_fields", default={})

# Every LogRecord has these; any other attribute came from `extra=`
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

# Keyword arguments Logger.log() accepts itself
_LOGGER_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

_NOISY_LOGGERS = ("botocore", "aiobotocore", "aioboto3", "urllib3", "asyncio")


# =============================================================================
# FORMATTER
# =============================================================================
class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON; bound context first, record extras win."""

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(_bound_fields.get())
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS
        )
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


# =============================================================================
# CONTEXT
# =============================================================================
@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """
    Bind `fields` to every log line emitted inside the block.

    Nested blocks add to the outer fields; leaving a block restores them.
    """
    token = _bound_fields.set({**_bound_fields.get(), **fields})
    try:
        yield
    finally:
        _bound_fields.reset(token)


def current_log_context() -> Dict[str, Any]:
    return dict(_bound_fields.get())


# =============================================================================
# STRUCTURED LOGGER
# =============================================================================
class StructuredLogger(logging.LoggerAdapter):
    """
    Logger taking structured fields as keyword arguments.

    Usage:
        logger = StructuredLogger("objectgate.acl").with_extra(component="store")
        logger.info("Policy written", bucket="media", attempt=2)
    """

    def __init__(
        self,
        name: str,
        level: Optional[Union[LogLevel, str, int]] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        logger = logging.getLogger(name)
        if level is not None:
            logger.setLevel(LogLevel.parse(level).value)
        super().__init__(logger, dict(extra or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGER_KWARGS}
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {}), **fields}
        return msg, kwargs

    def with_extra(self, **fields: Any) -> StructuredLogger:
        """Child logger with additional default fields."""
        return StructuredLogger(self.logger.name, extra={**self.extra, **fields})

    context = staticmethod(log_context)


# =============================================================================
# SETUP
# =============================================================================
def setup_logging(
    level: Union[LogLevel, str, int] = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Replace the root handlers with one stream handler.

    Args:
        level: Minimum level, as a LogLevel, a name or a number.
        json_output: JSON lines when True, a human-readable format otherwise.
        stream: Destination (stderr when omitted).

    Raises:
        ValueError: Unknown level name.
    """
    resolved = LogLevel.parse(level)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved.value)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved.value)

    # Client libraries are chatty at DEBUG
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = [
    "LogLevel",
    "JsonFormatter",
    "StructuredLogger",
    "log_context",
    "current_log_context",
    "setup_logging",
]
