"""Logger hierarchy for readmeci.

Library code only ever calls :func:`get_logger`; output is left to the
embedding application, which may call :func:`configure_logging` once it
decides where records should go.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO

_LOGGER_NAME = "readmeci"

CONSOLE_FORMAT = "[readmeci] %(levelname)s %(name)s: %(message)s"
# Analyzers run on pool threads, so file output records the worker name.
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"

logging.getLogger(_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger such as ``readmeci.pipeline``."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Send readmeci records to ``stream`` (stderr by default) and optionally a file.

    Calling it again replaces the handlers installed by the previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            continue
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(sink)

    return logger


__all__ = ["CONSOLE_FORMAT", "FILE_FORMAT", "configure_logging", "get_logger"]
