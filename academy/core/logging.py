"""
Logging setup for the service.

Console output always; a rotating file handler when LOG_FILE is configured.
Bearer tokens are masked before records are emitted.
"""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "academy"


class TokenMaskingFilter(logging.Filter):
    """Mask bearer tokens and JWT-looking strings in log messages."""

    _bearer = re.compile(r"(bearer\s+)[A-Za-z0-9\-_\.]+", flags=re.IGNORECASE)
    _jwt = re.compile(r"eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            masked = self._bearer.sub(r"\1********", record.msg)
            record.msg = self._jwt.sub("********", masked)
        return True


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger. Safe to call more than once.

    Args:
        level: Level name, e.g. "INFO" or "DEBUG"
        log_file: Optional path; enables size-based rotation

    Returns:
        The configured "academy" logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Handler-level so records propagated from child loggers are masked too
    mask = TokenMaskingFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(mask)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(mask)
        logger.addHandler(file_handler)

    return logger
