"""Tests for core/logging.py - Logging configuration."""
import logging

import pytest


class TestLogging:
    """Test the logging module."""

    def test_get_logger_returns_named_logger(self):
        """get_logger should return the standard Logger for a module name."""
        from medsearch.core.logging import get_logger

        logger = get_logger("medsearch.services.retrieval.fanout")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "medsearch.services.retrieval.fanout"

    def test_setup_logging_sets_level(self):
        """setup_logging should configure the root log level."""
        from medsearch.core.logging import setup_logging

        setup_logging(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

        setup_logging(level="INFO")
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_falls_back_to_info(self):
        """An unrecognized level name should not break logging."""
        from medsearch.core.logging import setup_logging

        setup_logging(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_replaces_handlers(self):
        """Calling setup_logging twice should not duplicate handlers."""
        from medsearch.core.logging import setup_logging

        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_http_client_noise_is_reduced(self):
        """httpx and urllib3 should only log warnings and above."""
        from medsearch.core.logging import setup_logging

        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING
        setup_logging(level="INFO")

    def test_extra_quiet_loggers(self):
        """Loggers passed in quiet should be capped at WARNING."""
        from medsearch.core.logging import setup_logging

        setup_logging(level="DEBUG", quiet=["Bio"])
        assert logging.getLogger("Bio").level == logging.WARNING
        setup_logging(level="INFO")

    def test_logger_can_log_messages(self):
        """Logger should be able to log messages without error."""
        from medsearch.core.logging import get_logger

        logger = get_logger("test_logging")

        # These should not raise exceptions
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
