# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from src.config.logging_config import PROJECT_LOGGER, setup_logging


def _drop_handlers(name: str) -> None:
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        _drop_handlers(PROJECT_LOGGER)
        self.tmpdir = Path(tempfile.mkdtemp())

    def tearDown(self) -> None:
        _drop_handlers(PROJECT_LOGGER)
        _drop_handlers("uvicorn")
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path inside the requested directory."""
        log_path = setup_logging(self.tmpdir)
        self.assertTrue(log_path.exists())
        self.assertEqual(log_path.parent, self.tmpdir)

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging(self.tmpdir)
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_handler_levels(self) -> None:
        """File handler logs DEBUG, console handler WARNING."""
        setup_logging(self.tmpdir)
        handlers = logging.getLogger(PROJECT_LOGGER).handlers
        file_handlers = [
            h for h in handlers if isinstance(h, logging.FileHandler)
        ]
        stream_handlers = [
            h
            for h in handlers
            if not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(file_handlers[0].level, logging.DEBUG)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_repeated_calls_reuse_handlers(self) -> None:
        """A second call adds nothing and reports the same file."""
        first = setup_logging(self.tmpdir)
        count_before = len(logging.getLogger(PROJECT_LOGGER).handlers)
        second = setup_logging(self.tmpdir)
        self.assertEqual(first, second)
        self.assertEqual(
            count_before, len(logging.getLogger(PROJECT_LOGGER).handlers)
        )

    def test_child_records_reach_file(self) -> None:
        log_path = setup_logging(self.tmpdir)
        logging.getLogger(f"{PROJECT_LOGGER}.scraper.kaspi").debug(
            "card parsed"
        )
        for handler in logging.getLogger(PROJECT_LOGGER).handlers:
            handler.flush()
        self.assertIn("card parsed", log_path.read_text(encoding="utf-8"))

    def test_extra_loggers_share_file_handler(self) -> None:
        """uvicorn records are written to the run file too."""
        setup_logging(self.tmpdir, extra_loggers=("uvicorn",))
        project_file = next(
            h
            for h in logging.getLogger(PROJECT_LOGGER).handlers
            if isinstance(h, logging.FileHandler)
        )
        self.assertIn(project_file, logging.getLogger("uvicorn").handlers)


if __name__ == "__main__":
    unittest.main()
