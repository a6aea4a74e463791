"""
Logging setup for processes that embed the governor.

Routes records to stdout and, when configured, to a size-rotated file.
httpx and httpcore log every request at INFO; they are held at WARNING
unless the governor itself is at DEBUG, since the governor already reports
each dispatch.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from ..config import GovernorConfig

DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3

NOISY_LIBRARIES = ("httpx", "httpcore")


def _install_handlers(
    level: int,
    fmt: str,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    # Replace rather than stack when called more than once
    root.handlers.clear()

    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
        ))

    formatter = logging.Formatter(fmt)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(config: Optional[GovernorConfig] = None) -> None:
    """
    Configure the root logger from a GovernorConfig (INFO to stdout if None).

    Example:
        config = GovernorConfig.load("governor.yaml")
        setup_logging(config)
    """
    if config is None:
        _install_handlers(logging.INFO, DEFAULT_FORMAT)
        return

    _install_handlers(
        _level(config.log_level),
        config.log_format,
        config.log_file or None,
        config.log_max_bytes,
        config.log_backup_count,
    )


def setup_logging_from_dict(config_dict: Dict[str, Any]) -> None:
    """
    Configure the root logger from the ``logging`` section of a YAML config.

    Recognized keys: level, file, format, max_bytes, backup_count.
    Unknown levels fall back to INFO.
    """
    _install_handlers(
        _level(config_dict.get("level", "INFO")),
        config_dict.get("format", DEFAULT_FORMAT),
        config_dict.get("file"),
        config_dict.get("max_bytes", DEFAULT_MAX_BYTES),
        config_dict.get("backup_count", DEFAULT_BACKUP_COUNT),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
