import logging
import os
import unittest
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from app.config.logging_config import configure_logging


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO")
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "avatar_relay")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]  # Check first handler (should be console handler)
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def test_reconfigure_replaces_handlers(self):
        configure_logging("INFO")
        logger = configure_logging("DEBUG")

        self.assertEqual(logger.level, logging.DEBUG)
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        self.assertLessEqual(len(file_handlers), 1)
        self.assertLessEqual(len(logger.handlers), 2)

    def test_unknown_level_falls_back_to_info(self):
        logger = configure_logging("chatty")

        self.assertEqual(logger.level, logging.INFO)

    def test_default_level_read_from_environment_at_call_time(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}):
            logger = configure_logging()

        self.assertEqual(logger.level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
