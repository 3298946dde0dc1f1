# src/config/logging_config.py

"""Per-run timestamped logging configuration for kaspi_catalog.

Every process launch (CLI command or API server) writes to its own log
file inside ``logs/``, named after the launch time, for example
``logs/run_20261017_091502.log``.  Module loggers are children of
``kaspi_catalog`` (``kaspi_catalog.scraper``, ``kaspi_catalog.cache``,
``kaspi_catalog.api`` ...) so one handler pair covers the whole project.

The file gets everything from DEBUG up with module, function and line
number; the console only shows warnings and errors so that JSON printed
to stdout by the CLI stays clean.  When the API is served, uvicorn's own
loggers can be routed into the same file.
"""

import logging
import sys
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

PROJECT_LOGGER = "kaspi_catalog"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handler(log_file: Path) -> logging.FileHandler:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(
    log_dir: Path | None = None,
    extra_loggers: Iterable[str] = (),
) -> Path:
    """Initialise the ``kaspi_catalog`` logger for the current run.

    Args:
        log_dir: Directory for the run file, ``Settings.LOGS_DIR`` by
            default.
        extra_loggers: Third-party logger names (e.g. ``"uvicorn"``)
            whose records should also land in the run file.

    Returns:
        The :class:`~pathlib.Path` to the log file for this run.  On a
        repeated call the existing handlers are kept and the path of the
        file they already write to is returned.
    """
    project_logger = logging.getLogger(PROJECT_LOGGER)
    project_logger.setLevel(logging.DEBUG)

    for handler in project_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    directory = log_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    file_handler = _file_handler(log_file)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    project_logger.addHandler(file_handler)
    project_logger.addHandler(console_handler)

    for name in extra_loggers:
        extra = logging.getLogger(name)
        extra.setLevel(logging.INFO)
        extra.addHandler(file_handler)

    project_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
