"""
Structured logging for the transaction processor.

Every transaction gets a correlation ID held in a context variable; log events
emitted while it is processed carry that ID together with the processing
stage, operation, error code and free-form context:

    ┌─────────────────────────────────────────────────────────┐
    │                   TransactionHandler                     │
    │  logger.warning("rejected", error_code=..., address=x)  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                   TransactionLogger                      │
    │      correlation ID, stage, structured context           │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │           StructuredHandler (json) │ text formatter      │
    └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from alica_tp.config import ConfigValidationError, ConfigValue, ObservabilityConfig

ROOT_LOGGER_NAME = "alica_tp"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Context variable for transaction-scoped data
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class ProcessorStage(Enum):
    """Processing stages for categorization."""
    PARSE = "parse"
    VALIDATE = "validate"
    ADDRESS = "address"
    COMMIT = "commit"
    HANDLER = "handler"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    stage: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                stage=getattr(record, "stage", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TransactionLogger:
    """
    Structured logger for processor components.

    Thin wrapper over ``logging`` that attaches stage information and keyword
    context to every record, for ``StructuredHandler`` to pick up.
    """

    def __init__(self, name: str, stage: ProcessorStage):
        self.name = name
        self.stage = stage
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{stage.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "stage": self.stage.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, error_code: str = "", exc_info: bool = False, **context: Any) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def critical(self, message: str, error_code: str = "", exc_info: bool = False, **context: Any) -> None:
        self._log(logging.CRITICAL, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(self, name: str, duration_ms: float, success: bool = True, **context: Any) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"tx-{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block."""
    cid = correlation_id or generate_correlation_id()
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)


def get_logger(name: str, stage: ProcessorStage) -> TransactionLogger:
    return TransactionLogger(name, stage)


def _checked(value: ConfigValue, path: str) -> Any:
    current = value.get()
    if value.validator and not value.validator(current):
        raise ConfigValidationError(f"{path}: validation failed for value {current!r}")
    return current


def configure_logging(
    config: Optional[ObservabilityConfig] = None,
    stream: Any = None,
) -> logging.Logger:
    """Attach the configured handler to the package logger.

    Calling this again replaces the handler installed by the previous call.
    Raises ``ConfigValidationError`` for an unknown level or format, including
    one taken from the environment.
    """
    config = config or ObservabilityConfig()
    level = _checked(config.log_level, "observability.log_level")
    log_format = _checked(config.log_format, "observability.log_format")
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper()))

    for existing in list(root.handlers):
        if getattr(existing, "_alica_tp_configured", False):
            root.removeHandler(existing)

    if log_format == "json":
        handler: logging.Handler = StructuredHandler(stream)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._alica_tp_configured = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


T = TypeVar("T")


def timed_operation(
    logger: TransactionLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
