"""Tests for structured logging."""

import json
import logging
import sys

import pytest

from novelsync.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CustomJsonFormatter,
    TaskIdFilter,
    configure_logging,
    get_task_id,
    task_id_var,
)


def make_record(message: str = "hello", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="novelsync.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=exc_info,
    )


class TestTaskId:
    def test_default_is_empty(self):
        assert get_task_id() == ""

    def test_filter_adds_task_id(self):
        token = task_id_var.set("task-42")
        try:
            record = make_record()
            assert TaskIdFilter().filter(record) is True
            assert record.task_id == "task-42"
        finally:
            task_id_var.reset(token)


class TestFormatters:
    def test_compact_formatter_shows_task_tag(self):
        formatter = CompactExceptionFormatter("%(task_tag)s%(message)s")
        token = task_id_var.set("abc12345")
        try:
            record = make_record()
            TaskIdFilter().filter(record)
            output = formatter.format(record)
        finally:
            task_id_var.reset(token)
        assert "abc1234" in output
        assert output.endswith("hello")

    def test_compact_formatter_without_task(self):
        formatter = CompactExceptionFormatter("%(task_tag)s%(message)s")
        record = make_record()
        TaskIdFilter().filter(record)
        assert formatter.format(record) == "hello"

    def test_compact_formatter_includes_exception(self):
        formatter = CompactExceptionFormatter("%(task_tag)s%(message)s")
        try:
            raise ValueError("broken chapter list")
        except ValueError:
            record = make_record("failed", exc_info=sys.exc_info())
        TaskIdFilter().filter(record)

        output = formatter.format(record)

        assert "ValueError" in output
        assert "broken chapter list" in output

    def test_json_formatter_includes_task_id(self):
        formatter = CustomJsonFormatter("%(message)s")
        token = task_id_var.set("task-7")
        try:
            record = make_record()
            TaskIdFilter().filter(record)
            payload = json.loads(formatter.format(record))
        finally:
            task_id_var.reset(token)
        assert payload["message"] == "hello"
        assert payload["task_id"] == "task-7"


class TestLoggingConfiguration:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_configure_logging_debug_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_json_format(self):
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        root_logger = logging.getLogger()
        assert any(isinstance(h.formatter, CustomJsonFormatter) for h in root_logger.handlers)

    def test_noisy_loggers_are_quieted(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level >= logging.WARNING
        assert logging.getLogger("aiosqlite").level >= logging.WARNING
