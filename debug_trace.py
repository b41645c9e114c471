"""
debug_trace.py

Logging setup and category-tagged debug tracing.

``configure_logging`` installs handlers once at startup.  ``trace`` emits
lines like ``[REBUILD] ...`` at DEBUG level when ``[logging] debug_trace``
is enabled in settings (or ``DEBUG_TRACE`` is flipped at runtime).
"""

from __future__ import annotations

import logging
import sys
import traceback
from functools import wraps
from pathlib import Path
from typing import Optional

from settings import SettingsManager, get_settings

# Toggled by configure_logging() from settings
DEBUG_TRACE = False

LOG_FILE_NAME = "dialog_editor.log"
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_trace_log = logging.getLogger("dialog_editor.trace")
_file_handler: Optional[logging.Handler] = None


def configure_logging(manager: Optional[SettingsManager] = None, log_to_file: bool = True) -> Optional[Path]:
    """Configure root logging from settings.

    Args:
        manager: Settings to read (default: global settings).
        log_to_file: Also write to ``<user log dir>/dialog_editor.log``.

    Returns:
        Path of the log file, or None when file logging is off or unavailable.
    """
    global DEBUG_TRACE, _file_handler
    manager = manager or get_settings()
    cfg = manager.settings.logging
    DEBUG_TRACE = bool(cfg.debug_trace)

    level = logging.DEBUG if DEBUG_TRACE else getattr(logging, cfg.level, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    if not any(getattr(h, "_dialog_editor", False) for h in root.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        stream._dialog_editor = True
        root.addHandler(stream)

    if not log_to_file:
        return None

    close_log()
    log_dir = manager.get_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / LOG_FILE_NAME
        _file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning("File logging disabled: %s", e)
        return None
    _file_handler.setFormatter(formatter)
    root.addHandler(_file_handler)
    return path


def trace(msg: str, category: str = "INFO"):
    """Emit a category-tagged trace line."""
    if not DEBUG_TRACE:
        return
    _trace_log.debug("[%s] %s", category, msg)


def trace_exception(msg: str = "Exception"):
    """Trace the exception currently being handled."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function entry, exit and exceptions."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator


def close_log():
    """Detach and close the log file handler."""
    global _file_handler
    if _file_handler is not None:
        logging.getLogger().removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
