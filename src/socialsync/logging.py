"""
Structured Logging for the SocialSync proxy

JSON log lines tagged with the caller's correlation id, emitted at fixed
lifecycle points (received, upstream call, succeeded, failed). Logging is a
side channel and never changes control flow.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Union

# Used when the caller does not send a correlation header
DEFAULT_CORRELATION_ID = "no-test-id"

correlation_id_context: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EventType(Enum):
    """Event types for structured logging."""

    # Ingress
    REQUEST_START = "request_start"
    REQUEST_END = "request_end"
    OPERATION_RECEIVED = "operation_received"
    OPERATION_SUCCEEDED = "operation_succeeded"
    OPERATION_FAILED = "operation_failed"

    # Egress
    UPSTREAM_REQUEST = "upstream_request"
    UPSTREAM_RESPONSE = "upstream_response"
    UPSTREAM_ERROR = "upstream_error"

    # Bulk writes
    BATCH_CHUNK = "batch_chunk"

    # Process
    GATEWAY_START = "gateway_start"
    GATEWAY_ERROR = "gateway_error"


class StructuredFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", DEFAULT_CORRELATION_ID),
        }

        for field in (
            "event_type",
            "operation",
            "upstream",
            "duration_ms",
            "status_code",
            "method",
            "path",
            "metadata",
        ):
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(getattr(record, "extra_fields"))

        return json.dumps(log_entry, default=str)


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that ignores writes to streams closed during shutdown."""

    def emit(self, record):
        try:
            if hasattr(self.stream, "closed") and self.stream.closed:
                return
            super().emit(record)
        except (ValueError, OSError) as e:
            error_msg = str(e).lower()
            if any(
                phrase in error_msg
                for phrase in ["closed file", "bad file descriptor", "i/o operation on closed file"]
            ):
                return
            raise


class SocialSyncLogger:
    """Structured logger for the proxy."""

    def __init__(self, name: str = "socialsync", level: LogLevel = LogLevel.INFO):
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.value))

        # Remove existing handlers to avoid duplicates
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        handler = SafeStreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(handler)

        self.logger.propagate = False

    def set_level(self, level: LogLevel):
        self.logger.setLevel(getattr(logging, level.value))

    def _log(self, level: LogLevel, message: str, exc_info=None, **kwargs):
        extra = {"correlation_id": get_correlation_id()}

        if "event_type" in kwargs:
            event_type = kwargs.pop("event_type")
            extra["event_type"] = (
                event_type.value if isinstance(event_type, EventType) else event_type
            )

        for field in (
            "operation",
            "upstream",
            "duration_ms",
            "status_code",
            "method",
            "path",
            "metadata",
        ):
            if field in kwargs:
                extra[field] = kwargs.pop(field)

        if kwargs:
            extra["extra_fields"] = kwargs

        getattr(self.logger, level.value.lower())(message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **kwargs):
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log(LogLevel.CRITICAL, message, **kwargs)

    def log_event(self, event_type: EventType, message: str, **kwargs):
        """Log a structured event."""
        self.info(message, event_type=event_type, **kwargs)

    def log_request_start(self, method: str, path: str, **kwargs):
        self.log_event(
            EventType.REQUEST_START, f"{method} {path}", method=method, path=path, **kwargs
        )

    def log_request_end(
        self, method: str, path: str, status_code: int, duration_ms: float, **kwargs
    ):
        self.log_event(
            EventType.REQUEST_END,
            f"{method} {path} - {status_code} ({duration_ms:.1f}ms)",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs,
        )

    def log_operation_received(self, operation: str, method: str, path: str, **kwargs):
        """Log that an ingress operation started."""
        self.log_event(
            EventType.OPERATION_RECEIVED,
            f"--- Received request for {path} ---",
            operation=operation,
            method=method,
            path=path,
            **kwargs,
        )

    def log_operation_succeeded(self, operation: str, duration_ms: float, **kwargs):
        self.log_event(
            EventType.OPERATION_SUCCEEDED,
            f"{operation} succeeded ({duration_ms:.1f}ms)",
            operation=operation,
            status_code=200,
            duration_ms=duration_ms,
            **kwargs,
        )

    def log_operation_failed(
        self,
        operation: str,
        error: Union[str, Exception],
        status_code: int,
        duration_ms: Optional[float] = None,
        **kwargs,
    ):
        """Log a failed operation with the original error for operators."""
        base_meta = {"error": str(error)}
        if isinstance(error, Exception):
            base_meta["error_type"] = type(error).__name__
        extra_meta = kwargs.pop("metadata", None)
        if extra_meta:
            base_meta.update(extra_meta)

        self._log(
            LogLevel.ERROR,
            f"--- CRASH in {operation} --- {error}",
            exc_info=error if isinstance(error, Exception) else None,
            event_type=EventType.OPERATION_FAILED,
            operation=operation,
            status_code=status_code,
            duration_ms=duration_ms,
            metadata=base_meta,
            **kwargs,
        )

    def log_upstream_request(self, upstream: str, method: str, url: str, **kwargs):
        self.debug(
            f"Calling {upstream}: {method} {url}",
            event_type=EventType.UPSTREAM_REQUEST,
            upstream=upstream,
            method=method,
            path=url,
            **kwargs,
        )

    def log_upstream_response(
        self, upstream: str, url: str, status_code: int, duration_ms: float, **kwargs
    ):
        self.debug(
            f"{upstream} response from {url}: {status_code} ({duration_ms:.1f}ms)",
            event_type=EventType.UPSTREAM_RESPONSE,
            upstream=upstream,
            path=url,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs,
        )

    def log_upstream_error(self, upstream: str, url: str, error: Union[str, Exception], **kwargs):
        base_meta = {"error": str(error)}
        extra_meta = kwargs.pop("metadata", None)
        if extra_meta:
            base_meta.update(extra_meta)

        self.warning(
            f"{upstream} call to {url} failed: {error}",
            event_type=EventType.UPSTREAM_ERROR,
            upstream=upstream,
            path=url,
            metadata=base_meta,
            **kwargs,
        )

    def log_batch_chunk(self, table: str, index: int, total: int, size: int, **kwargs):
        self.info(
            f"Writing chunk {index + 1}/{total} ({size} records) to {table}",
            event_type=EventType.BATCH_CHUNK,
            metadata={"table": table, "chunk": index, "chunks": total, "size": size},
            **kwargs,
        )


# Global logger instance
logger = SocialSyncLogger()
_loggers: Dict[str, SocialSyncLogger] = {"socialsync": logger}


def get_logger(name: str = "socialsync") -> SocialSyncLogger:
    """Get a logger instance, shared per name."""
    if name not in _loggers:
        _loggers[name] = SocialSyncLogger(name)
    return _loggers[name]


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Bind the caller's correlation id, or the placeholder when absent."""
    if not correlation_id:
        correlation_id = DEFAULT_CORRELATION_ID

    correlation_id_context.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str:
    return correlation_id_context.get() or DEFAULT_CORRELATION_ID


def clear_correlation_id():
    correlation_id_context.set(None)


def configure_logging(level: LogLevel = LogLevel.INFO, enable_debug: bool = False):
    """Configure global logging settings."""
    if enable_debug:
        level = LogLevel.DEBUG

    for instance in _loggers.values():
        instance.set_level(level)

    logger.info(
        "Logging configured",
        event_type=EventType.GATEWAY_START,
        metadata={"log_level": level.value, "debug_enabled": enable_debug},
    )
