"""Tests for logging setup."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from bookhub_governor.config import GovernorConfig
from bookhub_governor.governor import RequestGovernor
from bookhub_governor.utils.logging import get_logger, setup_logging, setup_logging_from_dict


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_defaults(self):
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_level_from_config(self):
        setup_logging(GovernorConfig(log_level="debug"))
        assert logging.getLogger().level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "governor.log"
        setup_logging(GovernorConfig(log_file=str(log_file), log_backup_count=2))
        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].backupCount == 2

        get_logger("bookhub_governor.test").warning("written")
        file_handlers[0].flush()
        assert "written" in log_file.read_text()

    def test_repeated_setup_does_not_stack(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1


class TestSetupLoggingFromDict:
    """Tests for setup_logging_from_dict."""

    def test_level(self):
        setup_logging_from_dict({"level": "warning"})
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging_from_dict({"level": "chatty"})
        assert logging.getLogger().level == logging.INFO

    def test_http_libraries_quieted(self):
        setup_logging_from_dict({"level": "INFO"})
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_http_libraries_verbose_at_debug(self):
        setup_logging_from_dict({"level": "DEBUG"})
        assert logging.getLogger("httpcore").level == logging.DEBUG


class TestGovernorLogging:
    """A governor built from a config applies its logging settings."""

    def test_config_logging_applied(self, tmp_path, transport):
        log_file = tmp_path / "governor.log"
        RequestGovernor(
            GovernorConfig(log_file=str(log_file), log_level="WARNING"), transport=transport
        )
        root = logging.getLogger()
        assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
        assert root.level == logging.WARNING

    def test_no_config_leaves_logging_alone(self, transport):
        before = list(logging.getLogger().handlers)
        RequestGovernor(transport=transport)
        assert logging.getLogger().handlers == before
