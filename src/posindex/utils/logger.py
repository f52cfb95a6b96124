"""Logger configuration and convenience helpers."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_DEFAULT_LOGGER_NAME = "posindex"
_DEFAULT_LOG_LEVEL = logging.INFO
_DEFAULT_FORMATTER = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
_DEFAULT_HANDLER = logging.StreamHandler(sys.stdout)
_DEFAULT_HANDLER.setFormatter(_DEFAULT_FORMATTER)


def _configure_logger(logger: logging.Logger, level: int) -> None:
    """
    Configure a logger with the given level and the shared stdout handler.

    Loggers under the ``posindex`` namespace propagate to the package root,
    which owns the only handler. Any other logger name gets the handler
    attached directly.

    Parameters
    ----------
    logger : logging.Logger
        The logger instance to configure.
    level : int
        The logging level to set if the logger's level is not already set.

    Examples
    --------
    >>> import logging
    >>> from posindex.utils.logger import _configure_logger
    >>> logger = logging.getLogger("posindex")
    >>> _configure_logger(logger, logging.INFO)
    >>> logger.info("ready")
    """
    if logger.name.startswith(f"{_DEFAULT_LOGGER_NAME}."):
        _configure_logger(logging.getLogger(_DEFAULT_LOGGER_NAME), level)
        return
    if logger.level == logging.NOTSET:
        logger.setLevel(level)
    if not logger.handlers:
        logger.addHandler(_DEFAULT_HANDLER)
    logger.propagate = False


def get_logger(name: str | None = None, level: int = _DEFAULT_LOG_LEVEL) -> logging.Logger:
    """Return a configured logger for the given name."""
    logger = logging.getLogger(name or _DEFAULT_LOGGER_NAME)
    _configure_logger(logger, level)
    return logger


def set_level(level: int | str, logger_names: list[str] | None = None) -> None:
    """Set the log level for one or more logger names."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    names = logger_names or [_DEFAULT_LOGGER_NAME]
    for name in names:
        logging.getLogger(name).setLevel(level)


def log_to_file(path: Path | str, level: int | str = _DEFAULT_LOG_LEVEL) -> logging.Handler:
    """Send package logs to ``path`` instead of stdout.

    The interactive viewer owns the terminal, so log lines go to a file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setFormatter(_DEFAULT_FORMATTER)
    root = get_logger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    set_level(level)
    return handler
