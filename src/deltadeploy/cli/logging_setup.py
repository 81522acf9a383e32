"""Logging configuration for the deltadeploy CLI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure logging to output to stdout and optionally to a file.

    Handlers installed by a previous call are replaced.

    Args:
        level: Level of the ``deltadeploy`` logger.
        log_file: Optional path of a log file to append to.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    # Root logger for deltadeploy
    root_logger = logging.getLogger("deltadeploy")
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
