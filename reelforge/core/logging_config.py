# File: reelforge/core/logging_config.py

"""
Centralized logging configuration.

Usage:
    from reelforge.core.logging_config import setup_logging
    setup_logging()  # Call once at startup

    # Then in any module:
    import logging
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from reelforge.core.config.settings import settings

_CONFIGURED = False

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[Union[int, str]] = None, log_file: Optional[Path] = None) -> None:
    """
    Configures the 'reelforge' logger once per process.

    Args:
        level: Logging level; defaults to settings.LOG_LEVEL.
        log_file: Optional file to mirror the console output to; defaults to settings.LOG_FILE.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if log_file is None and settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)

    logger = logging.getLogger("reelforge")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _CONFIGURED = True
