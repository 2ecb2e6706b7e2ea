"""Process-wide ``countyreport`` logger.

Records go to ``<work dir>/logs/countyreport.log`` (rotated) and to stderr so
that command output on stdout stays machine readable. The work directory comes
from ``COUNTYREPORT_WORK_DIR``; the initial level from ``COUNTYREPORT_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "countyreport"
WORK_DIR_ENV = "COUNTYREPORT_WORK_DIR"
LOG_LEVEL_ENV = "COUNTYREPORT_LOG_LEVEL"
LOG_FILENAME = "countyreport.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_MAX_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 3

_LOGGER: logging.Logger | None = None


def _work_dir() -> Path:
    env = os.getenv(WORK_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / "CountyReport" / "work"


def resolve_level(name: str) -> int:
    """Map a level name such as ``debug`` to its ``logging`` constant."""

    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the shared logger, creating its handlers on first use."""

    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    base = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    base.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(os.getenv(LOG_LEVEL_ENV) or "INFO"))
    logger.propagate = False

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    file_handler = RotatingFileHandler(
        base / LOG_FILENAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    console = logging.StreamHandler(sys.stderr)
    for handler in (file_handler, console):
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    _LOGGER = logger
    return logger


def set_level(name: str) -> logging.Logger:
    """Change the shared logger's level; unknown names raise ``ValueError``."""

    logger = get_logger()
    logger.setLevel(resolve_level(name))
    return logger


__all__ = ["get_logger", "set_level", "resolve_level", "WORK_DIR_ENV", "LOG_LEVEL_ENV"]
