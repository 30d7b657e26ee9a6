"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from sysmon.log import configure


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


def test_configure_writes_json_lines(tmp_path):
    log_path = tmp_path / "logs" / "sysmon.jsonl"
    configure(log_path)

    structlog.get_logger("test").info("signal_sent", pid=4242, signal="SIGTERM")
    for handler in logging.getLogger().handlers:
        handler.flush()

    record = json.loads(log_path.read_text().splitlines()[-1])
    assert record["event"] == "signal_sent"
    assert record["pid"] == 4242
    assert record["level"] == "info"
    assert "ts" in record


def test_configure_below_level_is_dropped(tmp_path):
    log_path = tmp_path / "sysmon.jsonl"
    configure(log_path)

    structlog.get_logger("test").debug("tick", processes=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path.read_text() == ""


def test_configure_without_path_installs_null_handler():
    configure(None)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.NullHandler)
