"""Process logging for the console.

Every dispatched request is already mirrored by the request log, so the
per-request INFO lines of the HTTP client libraries are turned down.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from medeasy_console.config import load_settings

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that would duplicate request log entries.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _formatted(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _open_file_handler(log_file: str) -> logging.Handler | None:
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        return _formatted(logging.FileHandler(log_file, encoding="utf-8"))
    except OSError as exc:
        _logger.warning("Log file %s unavailable, logging to stderr only: %s", log_file, exc)
        return None


def configure_logging() -> None:
    """Install stderr (and optionally file) handlers at the configured level."""
    global _logging_configured

    settings = load_settings()
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers = [_formatted(logging.StreamHandler(sys.stderr))]
    if settings.logging.file:
        file_handler = _open_file_handler(settings.logging.file)
        if file_handler is not None:
            handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, configuring logging on first use."""
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    return logging.getLogger(name)
