"""Tests for logging configuration utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import sys

import pytest

from shigen.core.utils.logging import (
    NOISY_LOGGERS,
    StructuredJSONFormatter,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def _record(msg: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="shigen.test",
        level=level,
        pathname="/src/shigen/test.py",
        lineno=7,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.funcName = "do_work"
    record.module = "test"
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(StructuredJSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "hello"
        assert data["timestamp"].endswith("+00:00")
        assert data["context"]["logger_name"] == "shigen.test"
        assert data["context"]["function"] == "do_work"
        assert data["context"]["line"] == 7

    def test_extra_fields(self):
        record = _record(model="openai", request_id="req-1")
        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["model"] == "openai"
        assert data["context"]["request_id"] == "req-1"

    def test_exception_info(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["error_type"] == "ValueError"
        assert data["context"]["error_message"] == "bad value"
        assert "Traceback" in data["context"]["stack_trace"]


class TestConfigureLogging:
    def test_level_and_noisy_loggers(self):
        configure_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.ERROR

    def test_structured_file_output(self, tmp_path: Path):
        log_file = tmp_path / "shigen.jsonl"
        configure_logging(level="INFO", filename=str(log_file), structured=True)

        logging.getLogger("shigen.example").info("stream opened")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "stream opened"

    def test_reconfigure_replaces_handlers(self):
        configure_logging(level="INFO")
        configure_logging(level="WARNING")
        assert len(logging.getLogger().handlers) == 1


def test_get_logger_with_context():
    adapter = get_logger("shigen.ctx", model="openai")
    assert isinstance(adapter, logging.LoggerAdapter)
    assert adapter.extra == {"model": "openai"}
    assert isinstance(get_logger("shigen.plain"), logging.Logger)
