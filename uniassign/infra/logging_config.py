"""Process-wide logging setup.

configure_logging() sets the root level and format, optionally adds a rotating
file handler, and turns down chatty third-party loggers. LOG_LEVEL and
LOG_FILE are read from the environment when not passed explicitly.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_DEFAULT_LEVEL = "INFO"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "telegram.ext", "apscheduler", "aiohttp.access")


def resolve_level(raw: str | None = None) -> int:
    value = (raw if raw is not None else os.environ.get("LOG_LEVEL", _DEFAULT_LEVEL)).strip().upper()
    level = logging.getLevelName(value)
    if isinstance(level, int):
        return level
    return logging.INFO


def _get_log_file() -> str | None:
    path = os.environ.get("LOG_FILE", "").strip()
    return path or None


def configure_logging(*, level: int | None = None, log_file: str | None = None) -> None:
    """Configure the root logger once at startup.

    Args:
        level: Log level. Falls back to LOG_LEVEL, then INFO.
        log_file: Rotating log file path. Falls back to LOG_FILE; stderr only when unset.
    """
    if level is None:
        level = resolve_level()
    if log_file is None:
        log_file = _get_log_file()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=_MAX_BYTES,
                backupCount=_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as exc:
            root.warning("Could not open log file %s: %s; logging to stderr only", log_file, exc)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
