"""Tests for umbrella_imap.logging."""

from __future__ import annotations

import logging

import structlog

from umbrella_imap.config import LoggingConfig
from umbrella_imap.logging import setup_logging


class TestSetupLogging:
    def test_json_mode(self):
        setup_logging(LoggingConfig(json_format=True, level="INFO"))
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_console_mode(self):
        setup_logging(LoggingConfig(json_format=False, level="DEBUG"))
        assert logging.getLogger().level == logging.DEBUG

    def test_level_case_insensitive(self):
        setup_logging(LoggingConfig(level="warning"))
        assert logging.getLogger().level == logging.WARNING

    def test_default_config(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_replaces_existing_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())
        setup_logging()
        assert len(root.handlers) == 1

    def test_structlog_produces_output(self, capsys):
        setup_logging(LoggingConfig(json_format=True, level="DEBUG"))
        structlog.get_logger("test_logger").info("message_loaded", uid="42")
        assert '"event": "message_loaded"' in capsys.readouterr().err
