# =============================================================================
# core/logger.py — Centralized Logging Utility
# Every module logs through here; one dated file per day under LOGS_DIR.
# =============================================================================

import logging
import os
from datetime import datetime
from config import LOGS_DIR

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Console verbosity shared by every logger created here
_console_level = logging.INFO


def _log_path() -> str:
    return os.path.join(LOGS_DIR, datetime.now().strftime("sentinel_%Y%m%d.log"))


def get_logger(name: str) -> logging.Logger:
    """
    Named logger with a console handler (INFO, or DEBUG after --debug) and a
    DEBUG file handler writing to logs/sentinel_YYYYMMDD.log.

    Usage:  log = get_logger(__name__)
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    for handler, level in (
        (logging.StreamHandler(), _console_level),
        (logging.FileHandler(_log_path(), encoding="utf-8"), logging.DEBUG),
    ):
        handler.setLevel(level)
        handler.setFormatter(_FORMATTER)
        logger.addHandler(handler)
    return logger


def set_console_level(level: int) -> None:
    """Change console verbosity for existing and future loggers."""
    global _console_level
    _console_level = level
    for logger in logging.Logger.manager.loggerDict.values():
        if not isinstance(logger, logging.Logger):
            continue
        for handler in logger.handlers:
            # FileHandler subclasses StreamHandler; match the console one only
            if type(handler) is logging.StreamHandler:
                handler.setLevel(level)
