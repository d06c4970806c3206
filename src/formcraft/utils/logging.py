"""Logging configuration for applications embedding the form editor.

Handlers are attached to the ``formcraft`` package logger rather than the
root logger, so a host application keeps control of its own output while
tree mutations still land in a rotating ``formcraft.log``.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any

__all__ = [
    "PACKAGE_LOGGER",
    "LOG_FILE_NAME",
    "setup_logging",
    "setup_logging_from_settings",
    "reset_logging",
    "get_logger",
    "get_log_path",
]

PACKAGE_LOGGER = "formcraft"
LOG_FILE_NAME = "formcraft.log"
LOG_DIR_ENV = "FORMCRAFT_LOG_DIR"

_DEFAULT_LOG_DIR = Path.home() / ".formcraft" / "logs"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Subscribe/publish chatter; held at INFO even when the tree is logged at DEBUG.
_EVENT_BUS_LOGGER = "formcraft.editor.events"
_HANDLER_MARK = "_formcraft_handler"

_log_path: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Send ``formcraft.*`` records to ``<log_dir>/formcraft.log``.

    Repeated calls return the existing log path unless ``force`` is set, in
    which case previously installed handlers are replaced. ``log_dir``
    falls back to ``$FORMCRAFT_LOG_DIR`` and then ``~/.formcraft/logs``.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    reset_logging()
    log_path = _resolve_log_dir(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    _install(package_logger, file_handler, level)
    if console:
        _install(package_logger, logging.StreamHandler(), level)
    package_logger.setLevel(level)
    package_logger.propagate = False

    bus_level = logging.INFO if level < logging.INFO else level
    logging.getLogger(_EVENT_BUS_LOGGER).setLevel(bus_level)

    _log_path = log_path
    package_logger.debug("Logging to %s at %s", log_path, logging.getLevelName(level))
    return log_path


def setup_logging_from_settings(settings: Any, *, console: bool = True) -> Path:
    """Apply ``debug_logging`` and ``log_dir`` from :class:`EditorSettings`."""

    level = logging.DEBUG if getattr(settings, "debug_logging", False) else logging.INFO
    return setup_logging(level, log_dir=getattr(settings, "log_dir", None), console=console, force=True)


def reset_logging() -> None:
    """Detach and close the handlers installed by :func:`setup_logging`."""

    global _log_path
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    logging.getLogger(_EVENT_BUS_LOGGER).setLevel(logging.NOTSET)
    _log_path = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``formcraft`` namespace."""

    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    return _log_path


def _install(package_logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    setattr(handler, _HANDLER_MARK, True)
    package_logger.addHandler(handler)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
