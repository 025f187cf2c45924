import io
import logging
from collections.abc import Generator

import pytest
from msgspec.json import decode as decode_json

from procspec._serialization import encode_json
from procspec.utils.logging import (
    CorrelationIDFilter,
    StructuredFormatter,
    configure_logging,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)


@pytest.fixture
def root_logger() -> Generator[logging.Logger, None, None]:
    logger = logging.getLogger("procspec")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def correlation_id() -> Generator[str, None, None]:
    set_correlation_id("req-42")
    yield "req-42"
    set_correlation_id(None)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("procspec.test", logging.INFO, __file__, 10, message, (), None)


def test_get_logger_uses_procspec_namespace() -> None:
    assert get_logger().name == "procspec"
    assert get_logger("binder").name == "procspec.binder"
    assert get_logger("procspec.executor").name == "procspec.executor"


def test_get_logger_adds_single_correlation_filter() -> None:
    logger = get_logger("filters")
    get_logger("filters")

    assert sum(isinstance(f, CorrelationIDFilter) for f in logger.filters) == 1


def test_correlation_filter_sets_attribute(correlation_id: str) -> None:
    record = _record()

    assert CorrelationIDFilter().filter(record)
    assert record.correlation_id == correlation_id  # type: ignore[attr-defined]
    assert get_correlation_id() == correlation_id


def test_structured_formatter_emits_json(correlation_id: str) -> None:
    record = _record("Executing procedure")
    record.extra_fields = {"sql": "{call [dbo].[sp](?)}", "parameter_count": 1}  # type: ignore[attr-defined]

    entry = decode_json(StructuredFormatter().format(record))

    assert entry["message"] == "Executing procedure"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "procspec.test"
    assert entry["correlation_id"] == correlation_id
    assert entry["sql"] == "{call [dbo].[sp](?)}"
    assert entry["parameter_count"] == 1


def test_log_with_context_attaches_extra_fields(root_logger: logging.Logger) -> None:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(level="DEBUG", extra_handlers=[handler])

    log_with_context(get_logger("executor"), logging.DEBUG, "Executing scalar function", parameter_count=2)

    lines = [decode_json(line) for line in stream.getvalue().splitlines()]
    entry = next(line for line in lines if line["message"] == "Executing scalar function")
    assert entry["parameter_count"] == 2
    assert root_logger.propagate is False


def test_log_with_context_skips_disabled_levels(root_logger: logging.Logger) -> None:
    stream = io.StringIO()
    configure_logging(level="WARNING", format_style="simple", extra_handlers=[logging.StreamHandler(stream)])

    log_with_context(get_logger("executor"), logging.DEBUG, "hidden")

    assert "hidden" not in stream.getvalue()


def test_encode_json_stringifies_unknown_values() -> None:
    class Token:
        def __str__(self) -> str:
            return "token"

    assert decode_json(encode_json({"value": Token()})) == {"value": "token"}
