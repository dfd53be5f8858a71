"""Loguru sink setup for the CLI."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<level>{message}</level>"
)


def get_log_file_path() -> Path:
    return Path(tempfile.gettempdir()) / "toolscout-logs" / "search.log"


def setup_logging(level: str | None = None, *, log_file: Path | None = None) -> Path:
    """Log to stderr at the requested level and everything to a file.

    stdout stays free for command output.
    """
    console_level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    path = log_file or get_log_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, level=console_level, format=_CONSOLE_FORMAT, colorize=True)
    logger.add(path, level="TRACE", encoding="utf-8")
    return path
