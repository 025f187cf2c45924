# ruff: noqa: PLR6301
"""Logging for procspec.

Loggers come from :func:`get_logger` and live under the ``procspec``
namespace. Nothing is emitted until the application attaches handlers,
either its own or through :func:`configure_logging`. Generated SQL and
parameter counts are logged at DEBUG with structured extra fields, so a
request can be traced through its correlation ID.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from procspec._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "procspec"
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("procspec_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Bind a correlation ID to the current context; ``None`` clears it."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    ``extra_fields`` attached by :func:`log_with_context` are merged into the
    top level of the object.
    """

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


class CorrelationIDFilter(logging.Filter):
    """Copy the context's correlation ID onto each record as ``correlation_id``."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``procspec`` namespace.

    Args:
        name: Module-level name such as ``"binder"``. Names already under the
            namespace are used as is. ``None`` returns the package root logger.

    Returns:
        The logger, carrying a :class:`CorrelationIDFilter`.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def _console_formatter(format_style: str) -> logging.Formatter:
    if format_style == "structured":
        return StructuredFormatter()
    return logging.Formatter(SIMPLE_FORMAT)


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Attach handlers to the ``procspec`` root logger, replacing existing ones.

    Records stop propagating to the Python root logger.

    Args:
        level: Level name, e.g. ``"DEBUG"``.
        format_style: ``"structured"`` for JSON lines, anything else for plain text.
        log_to_file: Path of a file receiving JSON lines as well.
        extra_handlers: Handlers added as given.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_console_formatter(format_style))
    handlers: list[logging.Handler] = [console_handler]
    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)
    handlers.extend(extra_handlers or ())
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.propagate = False

    log_with_context(
        root_logger,
        logging.DEBUG,
        "procspec logging configured",
        level=level,
        format_style=format_style,
        handlers_count=len(handlers),
    )


def log_with_context(logger: logging.Logger, level: int, message: str, /, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` for :class:`StructuredFormatter`.

    Nothing is built when ``level`` is disabled for ``logger``.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra={"extra_fields": extra_fields}, stacklevel=2)
