"""Logger configuration for Mapty."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} {level: <7} {name} - {message}"


def setup_logger(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """Send logs to stderr, and also to ``log_file`` when given."""
    logger.remove()
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level)
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, format=_FILE_FORMAT, level=level, rotation="1 MB", retention=3)
