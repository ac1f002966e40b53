from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional


PACKAGE_LOGGER = "ugrpack"

_LOG_FORMAT = "%(name)s: %(message)s"
_DEBUG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LoggingConfig:
    """Explicit logging switches for a build or query session.

    console: emit records to stderr.
    debug_output: include DEBUG records (per-entry layout details).
    """

    console: bool = False
    debug_output: bool = False


_handler: Optional[logging.Handler] = None

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def configure_logging(config: Optional[LoggingConfig]) -> logging.Logger:
    """Apply ``config`` to the package logger and return it.

    Calling again replaces the console handler installed by a previous call,
    so repeated builds never duplicate output.
    """
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if config is None:
        return logger
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    level = logging.DEBUG if config.debug_output else logging.INFO
    logger.setLevel(level)
    if config.console:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(_DEBUG_FORMAT if config.debug_output else _LOG_FORMAT))
        _handler.setLevel(level)
        logger.addHandler(_handler)
    return logger
