"""Common utilities for Android DevKit.

This module centralises logging setup and trace identifier management used
across the toolkit.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import platform
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Iterator, Optional

from config.constants import LoggingConstants


_TRACE_ID_DEFAULT = "-"
_TRACE_ID_VAR: ContextVar[str] = ContextVar("android_devkit_trace_id", default=_TRACE_ID_DEFAULT)

# Track whether log cleanup has already run for the current day.
_logs_cleaned_today = False

_ROOT_LOGGER_NAME = "android_devkit"


class TraceIdFilter(logging.Filter):
    """Augment log records with their active trace identifier."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id()
        return True


def generate_trace_id() -> str:
    """Return a new random trace identifier."""
    return uuid.uuid4().hex


def get_trace_id() -> str:
    """Return the current trace identifier ("-" when unset)."""
    return _TRACE_ID_VAR.get()


def set_trace_id(trace_id: Optional[str]) -> Token[str]:
    """Set the active trace identifier and return the context token."""
    value = trace_id or _TRACE_ID_DEFAULT
    return _TRACE_ID_VAR.set(value)


def reset_trace_id(token: Token[str]) -> None:
    """Reset the trace identifier to the previous context."""
    _TRACE_ID_VAR.reset(token)


@contextmanager
def trace_id_scope(trace_id: Optional[str]) -> Iterator[None]:
    """Context manager that temporarily sets the trace identifier."""
    token = set_trace_id(trace_id)
    try:
        yield
    finally:
        reset_trace_id(token)


def _resolve_logs_dir() -> Path:
    """Return the directory path where log files should be stored."""
    override = os.environ.get(LoggingConstants.LOG_DIR_ENV)
    if override:
        return Path(override).expanduser()

    system = platform.system().lower()
    home_dir = Path.home()

    if system == "linux":
        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if xdg_data_home:
            return Path(xdg_data_home) / "android_devkit" / "logs"
        return home_dir / ".local" / "share" / "android_devkit" / "logs"

    return home_dir / ".android_devkit_logs"


def _cleanup_old_logs(logs_dir: Path, bootstrap_logger: logging.Logger) -> int:
    """Remove log files that do not belong to today (runs at most once per day)."""
    global _logs_cleaned_today

    if _logs_cleaned_today:
        return 0

    prefix = LoggingConstants.LOG_FILE_PREFIX
    today = dt.date.today().strftime("%Y%m%d")
    cleaned_count = 0

    try:
        filenames = os.listdir(logs_dir)
    except OSError:
        bootstrap_logger.exception("Unable to list logs directory", extra={"logs_dir": str(logs_dir)})
        return 0

    for filename in filenames:
        if not (filename.startswith(prefix) and filename.endswith(".log")):
            continue

        date_part = filename[len(prefix):len(prefix) + 8]
        if len(date_part) != 8 or not date_part.isdigit():
            continue

        if date_part == today:
            continue

        old_log_path = logs_dir / filename
        try:
            old_log_path.unlink()
            cleaned_count += 1
        except OSError:
            bootstrap_logger.exception("Error removing stale log file", extra={"stale_log": str(old_log_path)})

    _logs_cleaned_today = True
    return cleaned_count


def _ensure_logger_filters(logger: logging.Logger) -> None:
    """Attach the TraceIdFilter to the logger if not already present."""
    if any(isinstance(item, TraceIdFilter) for item in logger.filters):
        return
    logger.addFilter(TraceIdFilter())


def _configure_root_logger() -> logging.Logger:
    """Attach file and console handlers to the shared project logger once."""
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    _ensure_logger_filters(root)
    if root.handlers:
        return root

    bootstrap_logger = logging.getLogger(f"{_ROOT_LOGGER_NAME}.bootstrap")
    if not any(isinstance(handler, logging.NullHandler) for handler in bootstrap_logger.handlers):
        bootstrap_logger.addHandler(logging.NullHandler())

    logs_dir = _resolve_logs_dir()
    current_time = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = f"{LoggingConstants.LOG_FILE_PREFIX}{current_time}.log"

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        cleaned_count = _cleanup_old_logs(logs_dir, bootstrap_logger)
        log_filepath = logs_dir / log_filename
        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
    except OSError:
        cleaned_count = 0
        fallback_dir = Path.cwd() / "logs"
        fallback_dir.mkdir(parents=True, exist_ok=True)
        log_filepath = fallback_dir / log_filename
        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")

    file_formatter = logging.Formatter(LoggingConstants.LOG_FORMAT, datefmt=LoggingConstants.LOG_DATE_FORMAT)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)
    file_handler.addFilter(TraceIdFilter())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LoggingConstants.CONSOLE_LOG_FORMAT))
    console_handler.addFilter(TraceIdFilter())

    root.addHandler(file_handler)
    root.addHandler(console_handler)
    root.setLevel(logging.INFO)
    root.propagate = False

    if cleaned_count > 0:
        root.info("Removed %s old log file(s)", cleaned_count)
    root.info("Log file created: %s", log_filepath)
    return root


def get_logger(name: str = _ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a configured logger augmented with trace identifiers.

    Module loggers are children of the shared ``android_devkit`` logger, so
    handlers are installed exactly once no matter how many modules ask.
    """
    root = _configure_root_logger()
    if name == _ROOT_LOGGER_NAME:
        return root

    logger = logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
    _ensure_logger_filters(logger)
    return logger


def set_log_level(level: str) -> None:
    """Apply a textual log level (e.g. ``"DEBUG"``) to the project logger."""
    root = _configure_root_logger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))


def set_file_logging(enabled: bool) -> None:
    """Mute or restore the log file handler without touching the console."""
    root = _configure_root_logger()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG if enabled else logging.CRITICAL + 1)


__all__ = [
    "TraceIdFilter",
    "generate_trace_id",
    "get_logger",
    "get_trace_id",
    "reset_trace_id",
    "set_file_logging",
    "set_log_level",
    "set_trace_id",
    "trace_id_scope",
]
