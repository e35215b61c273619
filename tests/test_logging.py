"""Tests for logging setup and the structured formatter."""

import json
import logging

import pytest

from wakabeat.__main__ import StructuredFormatter, setup_logging
from wakabeat.core.config import WakabeatConfig


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    root.handlers = []
    yield root
    for h in root.handlers:
        h.close()
    root.level, root.handlers = saved[0], saved[1]


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("wakabeat.interpreter", logging.INFO, __file__, 1, "Sent heartbeat", None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestStructuredFormatter:

    def test_plain_record_unchanged(self):
        fmt = StructuredFormatter("%(message)s")
        assert fmt.format(_record()) == "Sent heartbeat"

    def test_structured_fields_appended(self):
        fmt = StructuredFormatter("%(message)s")
        line = fmt.format(_record(event="heartbeat_outcome", outcome="accepted", status=201, unrelated="x"))
        message, extras = line.split(" | ", 1)
        assert message == "Sent heartbeat"
        assert json.loads(extras) == {"event": "heartbeat_outcome", "outcome": "accepted", "status": 201}


class TestSetupLogging:

    def test_writes_log_file(self, tmp_path, clean_root_logger, monkeypatch):
        monkeypatch.delenv("WAKABEAT_LOG_LEVEL", raising=False)
        config = WakabeatConfig()
        config.logging.file = str(tmp_path / "logs" / "wakabeat.log")
        setup_logging(config)
        logging.getLogger("wakabeat.test").info("hello")
        for h in clean_root_logger.handlers:
            h.flush()
        assert "hello" in (tmp_path / "logs" / "wakabeat.log").read_text()

    def test_debug_flag_lowers_level(self, tmp_path, clean_root_logger):
        config = WakabeatConfig()
        config.logging.file = str(tmp_path / "wakabeat.log")
        config.plugin.debug = True
        setup_logging(config)
        assert clean_root_logger.level == logging.DEBUG

    def test_env_overrides_level(self, tmp_path, clean_root_logger, monkeypatch):
        monkeypatch.setenv("WAKABEAT_LOG_LEVEL", "error")
        config = WakabeatConfig()
        config.logging.file = str(tmp_path / "wakabeat.log")
        setup_logging(config)
        assert clean_root_logger.level == logging.ERROR
