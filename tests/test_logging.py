"""Tests for the structured logging system (ledger_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import ClosedPeriodError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start each test unconfigured, then restore the suite-wide setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_all_logs(stream)[0]
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "ledger_kernel.test"
        assert "ts" in record

    def test_extra_fields_and_ledger_types_serialize(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        entry_id = uuid4()
        get_logger("test").info(
            "posted",
            extra={"total": Decimal("10.50"), "posted_on": date(2024, 4, 1), "ref": entry_id},
        )

        record = _parse_all_logs(stream)[0]
        assert record["total"] == "10.50"
        assert record["posted_on"] == "2024-04-01"
        assert record["ref"] == str(entry_id)

    def test_exception_attributes_are_flattened(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ClosedPeriodError("2024-04", "2024-04-15")
        except ClosedPeriodError:
            get_logger("test").exception("post_failed")

        record = _parse_all_logs(stream)[0]
        assert record["exc_type"] == "ClosedPeriodError"
        assert record["exc_code"] == ClosedPeriodError.code
        assert record["exc_period_name"] == "2024-04"
        assert "traceback" in record


class TestLogContext:

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="corr-1", period_name="2024-04")
        get_logger("test").info("with context")

        record = _parse_all_logs(stream)[0]
        assert record["correlation_id"] == "corr-1"
        assert record["period_name"] == "2024-04"

    def test_unknown_and_none_fields_ignored(self):
        LogContext.set(not_a_field="x", run_id=None)
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner", run_id="run-1"):
            assert LogContext.get_all() == {"actor_id": "inner", "run_id": "run-1"}
        assert LogContext.get_all() == {"actor_id": "outer"}


class TestConfigureLogging:

    def test_idempotent(self):
        first, first_stream = _make_handler()
        second, second_stream = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)
        get_logger("test").info("once")

        assert len(_parse_all_logs(first_stream)) == 1
        assert second_stream.getvalue() == ""

    def test_does_not_propagate_to_root(self):
        configure_logging(stream=StringIO())
        assert logging.getLogger("ledger_kernel").propagate is False

    def test_level_filters_records(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        get_logger("test").info("dropped")
        get_logger("test").warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]
