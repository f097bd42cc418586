"""
Tests for structured logging: correlation ids, strategy context and formatters
"""
import json
import logging
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.logging_config import (
    ConsoleFormatter,
    StructuredFormatter,
    clear_correlation_id,
    get_strategy_id,
    log_method,
    set_correlation_id,
    strategy_context,
)


def _record(message="hello", name="services.backtesting.engine", level=logging.INFO, **extra):
    record = logging.LogRecord(name, level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def fixed_correlation_id():
    set_correlation_id("cid-0123456789")
    yield
    clear_correlation_id()


class TestStrategyContext:
    """strategy_context scoping"""

    def test_set_and_restored(self):
        assert get_strategy_id() is None
        with strategy_context("hoffman-irb") as strategy_id:
            assert strategy_id == "hoffman-irb"
            assert get_strategy_id() == "hoffman-irb"
        assert get_strategy_id() is None

    def test_nested(self):
        with strategy_context("bb-snap-back"):
            with strategy_context("dynamic-retest"):
                assert get_strategy_id() == "dynamic-retest"
            assert get_strategy_id() == "bb-snap-back"

    def test_restored_after_error(self):
        with pytest.raises(RuntimeError):
            with strategy_context("ema-crossover-partial"):
                raise RuntimeError("boom")
        assert get_strategy_id() is None


class TestStructuredFormatter:
    """JSON output"""

    def test_base_fields(self):
        entry = json.loads(StructuredFormatter().format(_record()))

        assert entry["correlation_id"] == "cid-0123456789"
        assert entry["service"] == "engine"
        assert entry["level"] == "INFO"
        assert entry["message"] == "hello"
        assert "strategy_id" not in entry
        assert "extra" not in entry

    def test_strategy_id_included(self):
        with strategy_context("bb-squeeze-breakout"):
            entry = json.loads(StructuredFormatter().format(_record()))
        assert entry["strategy_id"] == "bb-squeeze-breakout"

    def test_extra_fields(self):
        entry = json.loads(StructuredFormatter().format(_record(trades=3, balance=object())))
        assert entry["extra"]["trades"] == 3
        assert isinstance(entry["extra"]["balance"], str)


class TestConsoleFormatter:
    """Human-readable output"""

    def test_layout(self):
        line = ConsoleFormatter().format(_record("12 trades"))
        assert line.startswith("[cid-0123]")
        assert "engine" in line
        assert line.endswith("- 12 trades")

    def test_strategy_tag(self):
        with strategy_context("mean-reversion-hf"):
            line = ConsoleFormatter().format(_record("12 trades"))
        assert line.endswith("- {mean-reversion-hf} 12 trades")


class TestLogMethod:
    """@log_method decorator"""

    def test_enter_exit_logged(self, caplog):
        @log_method(level=logging.INFO, log_result=True)
        def add(a, b):
            return a + b

        with caplog.at_level(logging.INFO):
            assert add(2, 3) == 5

        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("ENTER:") and "add" in m for m in messages)
        exit_record = next(r for r in caplog.records if r.getMessage().startswith("EXIT:"))
        assert exit_record.result == "5"

    def test_error_logged_and_reraised(self, caplog):
        @log_method()
        def fail():
            raise ValueError("bad candles")

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(ValueError):
                fail()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors and errors[0].error_type == "ValueError"
