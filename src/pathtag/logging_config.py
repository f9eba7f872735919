"""Logging configuration for pathtag.

Operations are always recorded in a rotating log file; `--verbose` adds
debug output on stderr.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pathtag.config.models import LoggingSettings

_HANDLER_MARK = "_pathtag_handler"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> Path | None:
    """Install handlers on the `pathtag` logger.

    Handlers installed by an earlier call are replaced, so repeated invocations
    in one process do not duplicate output.

    Args:
        settings: The `logging` configuration section.
        verbose: Also log at DEBUG level to stderr.

    Returns:
        Path | None: The operations log location, or None if it could not be opened.
    """
    logger = logging.getLogger("pathtag")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    log_path: Path | None = Path(settings.file).expanduser()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
    except OSError:
        log_path = None
    else:
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        setattr(file_handler, _HANDLER_MARK, True)
        logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(logging.DEBUG)
        stream_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")
        )
        setattr(stream_handler, _HANDLER_MARK, True)
        logger.addHandler(stream_handler)

    return log_path


__all__ = ["configure_logging"]
