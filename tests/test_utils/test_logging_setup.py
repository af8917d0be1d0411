"""Tests for root logger configuration."""

from __future__ import annotations

import json
import logging

import pytest

from site_rotation.config import LoggingConfig
from site_rotation.utils.logging import _JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_level_from_config(tmp_path):
    config = LoggingConfig(level="INFO", log_file=str(tmp_path / "logs" / "app.log"))
    assert configure_logging(config) == logging.INFO
    assert logging.getLogger().level == logging.INFO
    assert (tmp_path / "logs").is_dir()


def test_debug_flag_forces_debug():
    config = LoggingConfig(level="ERROR", log_file="")
    assert configure_logging(config, debug=True) == logging.DEBUG


def test_file_handler_writes_records(tmp_path):
    log_file = tmp_path / "app.log"
    configure_logging(LoggingConfig(level="WARNING", log_file=str(log_file)))
    logging.getLogger("site_rotation.test").warning("history write failed")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "history write failed" in log_file.read_text(encoding="utf-8")


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord(
        {"name": "site_rotation.history.store", "levelname": "INFO", "msg": "Recorded %s",
         "args": ("abd_r1",), "entry_id": "h_1"}
    )
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["msg"] == "Recorded abd_r1"
    assert payload["logger"] == "site_rotation.history.store"
    assert payload["entry_id"] == "h_1"
    assert "args" not in payload
