"""Logging setup for SlideLib commands."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from slidelib.config.models import LoggingSettings

PACKAGE_LOGGER = "slidelib"
_HANDLER_MARKER = "_slidelib_handler"
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, _HANDLER_MARKER, False)]


def configure_logging(
    settings: LoggingSettings,
    data_dir: Path,
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Attach a console handler and a rotating file handler to the package logger.

    Calling this again replaces the handlers installed by a previous call
    instead of stacking new ones.

    Args:
        settings: Logging configuration.
        data_dir: Directory holding the log file.
        console: Optional rich console for the terminal handler; defaults to stderr.

    Returns:
        logging.Logger: The configured package logger.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _owned_handlers(logger):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    rich_handler.setLevel(level)
    setattr(rich_handler, _HANDLER_MARKER, True)
    logger.addHandler(rich_handler)

    log_path = Path(settings.file).expanduser()
    if not log_path.is_absolute():
        log_path = data_dir / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    file_handler.setLevel(min(level, logging.INFO))
    setattr(file_handler, _HANDLER_MARKER, True)
    logger.addHandler(file_handler)

    logger.setLevel(min(level, logging.INFO))
    return logger


def reset_logging() -> None:
    """Remove handlers installed by :func:`configure_logging`."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _owned_handlers(logger):
        logger.removeHandler(handler)
        handler.close()


__all__ = ["configure_logging", "reset_logging", "PACKAGE_LOGGER"]
