"""Logging system with file and console output.

This module configures the ``avif_converter`` logger hierarchy with a Rich
console handler and a rotating log file. It covers diagnostics only; the
per-run error and rename logs written next to the converted tree live in
``avif_converter.reporters.error_log``.

Example:
    >>> from avif_converter.core.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Starting conversion")
    >>> logger.debug("Processing file: %s", filename)

    >>> # Configure log level globally
    >>> from avif_converter.core.logger import configure_logging
    >>> configure_logging(level="DEBUG", log_dir=Path("/custom/path"))
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

ROOT_LOGGER_NAME = "avif_converter"
LOG_FILE_NAME = "avif_converter.log"

# Default configuration
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "avif_converter" / "logs"
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "[%(asctime)s] %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Custom theme for console output
CUSTOM_THEME = Theme(
    {
        "logging.level.debug": "dim cyan",
        "logging.level.info": "green",
        "logging.level.warning": "yellow",
        "logging.level.error": "bold red",
        "logging.level.critical": "bold white on red",
    }
)

# Global state
_log_dir: Path = DEFAULT_LOG_DIR
_log_level: int = DEFAULT_LOG_LEVEL
_initialized: bool = False
_console: Console | None = None


def _get_console() -> Console:
    """Get or create the Rich console instance.

    Returns:
        Console: The shared Rich console instance (writes to stderr).
    """
    global _console
    if _console is None:
        _console = Console(theme=CUSTOM_THEME, stderr=True)
    return _console


def _parse_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), DEFAULT_LOG_LEVEL)
    return level


def _create_file_handler() -> RotatingFileHandler:
    """Create a rotating file handler for the logger.

    Returns:
        RotatingFileHandler: Configured file handler with rotation.
    """
    _log_dir.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(_log_dir / LOG_FILE_NAME),
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    handler.setLevel(_log_level)
    return handler


def _create_console_handler() -> RichHandler:
    """Create a Rich console handler with colored output.

    Returns:
        RichHandler: Configured Rich handler for console output.
    """
    handler = RichHandler(
        console=_get_console(),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setLevel(_log_level)
    return handler


def configure_logging(
    level: int | str = DEFAULT_LOG_LEVEL,
    log_dir: Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
) -> None:
    """Configure the global logging settings.

    This function should be called once at application startup. Subsequent
    calls replace the previously installed handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Can be either an integer or string.
        log_dir: Directory for log files. Default: ~/.local/share/avif_converter/logs
        console_output: Whether to output logs to console. Default: True.
        file_output: Whether to output logs to file. Default: True.

    Example:
        >>> configure_logging(level="DEBUG")
        >>> configure_logging(level=logging.WARNING, file_output=False)
    """
    global _log_dir, _log_level, _initialized

    _log_level = _parse_level(level)
    if log_dir is not None:
        _log_dir = log_dir

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(_log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if console_output:
        root_logger.addHandler(_create_console_handler())

    if file_output:
        root_logger.addHandler(_create_file_handler())

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance under the ``avif_converter`` namespace.

    Args:
        name: The name of the logger, typically __name__.

    Returns:
        Logger: Logger that is a child of the ``avif_converter`` logger.

    Example:
        >>> logger = get_logger("cli")
        >>> logger.name
        'avif_converter.cli'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def is_configured() -> bool:
    """Check whether ``configure_logging`` has been called."""
    return _initialized


def set_log_level(level: int | str) -> None:
    """Set the log level for all avif_converter loggers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Can be either an integer or string.
    """
    global _log_level

    _log_level = _parse_level(level)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(_log_level)
    for handler in root_logger.handlers:
        handler.setLevel(_log_level)


def get_log_file_path() -> Path:
    """Get the path to the current log file."""
    return _log_dir / LOG_FILE_NAME


def get_log_dir() -> Path:
    """Get the log directory path."""
    return _log_dir


class LogLevel:
    """Log level constants for convenient access.

    Attributes:
        DEBUG: Detailed information for debugging.
        INFO: General operational information.
        WARNING: Indication of potential issues.
        ERROR: Error that prevented an operation.
        CRITICAL: Critical error, application may not continue.
    """

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


__all__ = [
    "configure_logging",
    "get_logger",
    "get_log_dir",
    "get_log_file_path",
    "is_configured",
    "set_log_level",
    "LogLevel",
    "DEFAULT_LOG_DIR",
    "DEFAULT_LOG_LEVEL",
    "ROOT_LOGGER_NAME",
]
