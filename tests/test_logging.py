"""
Tests for the logging setup.
"""

import os
import sys
import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vibecheck.core.logging import ERROR_LOG_FILE, LOG_FILE, setup_logging


class TestSetupLogging(unittest.TestCase):
    """Tests for setup_logging()."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmp = tempfile.TemporaryDirectory()
        self.log_dir = Path(self.tmp.name) / "logs"

    def tearDown(self):
        """Restore the default configuration before removing the directory."""
        setup_logging()
        self.tmp.cleanup()

    def file_handlers(self):
        return [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]

    def test_writes_all_and_error_files(self):
        logger = setup_logging(self.log_dir, "DEBUG")

        logger.info("report accepted")
        logger.error("store unavailable")
        for handler in self.file_handlers():
            handler.flush()

        all_logs = (self.log_dir / LOG_FILE).read_text()
        error_logs = (self.log_dir / ERROR_LOG_FILE).read_text()
        self.assertEqual(logger.name, "vibecheck")
        self.assertIn("report accepted", all_logs)
        self.assertIn("store unavailable", all_logs)
        self.assertNotIn("report accepted", error_logs)
        self.assertIn("store unavailable", error_logs)

    def test_reconfigure_does_not_duplicate_handlers(self):
        setup_logging(self.log_dir)
        setup_logging(self.log_dir)

        self.assertEqual(len(logging.getLogger().handlers), 3)
        self.assertEqual(len(self.file_handlers()), 2)

    def test_quiet_third_party_loggers(self):
        setup_logging(self.log_dir, "DEBUG")

        self.assertEqual(logging.getLogger("sqlalchemy").level, logging.WARNING)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
