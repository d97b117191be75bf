"""Rotating logger setup for the dashboard service."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

# httpx logs every request at INFO; the status poll alone fires every 2s
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logger(
    name: str = "nodeboard",
    log_file: str = "./logs/nodeboard.log",
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    level: int = logging.INFO,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Setup rotating file + console logger with ISO 8601 timestamps.

    Component loggers (``nodeboard.client``, ``nodeboard.orchestrator``...)
    are children of the logger configured here and propagate to it.

    Args:
        name: Logger name
        log_file: Path to log file (parent directory created if missing)
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        level: Logging level
        quiet: Third-party loggers raised to WARNING

    Returns:
        Configured logger instance
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    for noisy in quiet:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers if already configured
    if logger.handlers:
        return logger

    file_handler = RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
