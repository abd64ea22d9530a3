# tests/test_correlation_id.py
"""
Tests for correlation ID context management and its logging integration.
"""

import asyncio
import json
import logging

import pytest

from portfolio_performance.utils.context import (
    clear_batch_context,
    clear_correlation_id,
    correlation_scope,
    get_batch_context,
    get_correlation_id,
    new_correlation_id,
    set_batch_context,
    set_correlation_id,
)
from portfolio_performance.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    _get_log_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_correlation_id()
    clear_batch_context()
    yield
    clear_correlation_id()
    clear_batch_context()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("portfolio_performance.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        """Should return None when correlation ID is not set."""
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Should set and retrieve correlation ID."""
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"

    def test_clear_correlation_id(self):
        """Should clear correlation ID."""
        set_correlation_id("test-correlation-456")
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_new_correlation_id_is_prefixed_and_unique(self):
        first = new_correlation_id()
        assert first.startswith("batch-")
        assert first != new_correlation_id()
        assert new_correlation_id("trigger").startswith("trigger-")

    def test_batch_context_is_copied(self):
        set_batch_context("portfolio_id", "p1")
        ctx = get_batch_context()
        ctx["portfolio_id"] = "changed"
        assert get_batch_context() == {"portfolio_id": "p1"}


class TestCorrelationScope:
    """Tests for correlation_scope."""

    def test_generates_and_restores(self):
        with correlation_scope(portfolio_id="p1") as batch_id:
            assert get_correlation_id() == batch_id
            assert get_batch_context() == {"portfolio_id": "p1"}
        assert get_correlation_id() is None
        assert get_batch_context() == {}

    def test_nested_scope_inherits_id(self):
        with correlation_scope("outer-1") as outer:
            with correlation_scope(portfolio_id="p2") as inner:
                assert inner == outer == "outer-1"
                assert get_batch_context()["portfolio_id"] == "p2"
            assert get_batch_context() == {}

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with correlation_scope("boom-1"):
                raise RuntimeError("fail")
        assert get_correlation_id() is None

    def test_concurrent_tasks_are_isolated(self):
        async def worker(name: str) -> str | None:
            with correlation_scope(f"id-{name}"):
                await asyncio.sleep(0)
                return get_correlation_id()

        async def main():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(main()) == ["id-a", "id-b"]


class TestLoggingIntegration:
    """Tests for the correlation filter and JSON formatter."""

    def test_filter_without_id(self):
        record = _record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == NO_CORRELATION_ID
        assert record.batch_context == {}

    def test_filter_inside_scope(self):
        with correlation_scope("batch-abc", portfolio_id="p1"):
            record = _record()
            CorrelationIdFilter().filter(record)
        assert record.correlation_id == "batch-abc"
        assert record.batch_context == {"portfolio_id": "p1"}

    def test_json_formatter(self):
        with correlation_scope("batch-json", portfolio_id="p9"):
            record = _record("Computed 3 snapshots", snapshot_count=3)
            CorrelationIdFilter().filter(record)

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "batch-json"
        assert entry["context"] == {"portfolio_id": "p9"}
        assert entry["message"] == "Computed 3 snapshots"
        assert entry["extra"] == {"snapshot_count": 3}

    def test_json_formatter_stringifies_unencodable_extra(self):
        from decimal import Decimal

        record = _record(total_value=Decimal("1.50"))
        entry = json.loads(JsonFormatter().format(record))
        assert entry["extra"]["total_value"] == "1.50"

    def test_log_level_parsing(self):
        assert _get_log_level(" warn ") == logging.WARNING
        with pytest.raises(ValueError):
            _get_log_level("LOUD")

    def test_setup_logging_installs_filtered_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="DEBUG", log_format="json")
            assert root.level == logging.DEBUG
            [handler] = root.handlers
            assert isinstance(handler.formatter, JsonFormatter)
            assert any(isinstance(f, CorrelationIdFilter) for f in handler.filters)
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
