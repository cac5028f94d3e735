"""
Logging for tmxcon.

Verbosity flags apply to the tmxcon.* loggers only. Libraries used while
converting (Pillow opens every tileset image it measures) stay at WARNING, so
--debug shows the converter's own trace and nothing else.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER = 'tmxcon'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers kept at WARNING whatever the verbosity
QUIET_LOGGERS = ('PIL',)


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """
    Send log records to stdout and set the converter's verbosity.

    Args:
        verbose: Show per-file and per-layer progress (INFO)
        debug: Also show decode and compression details (DEBUG)

    Returns:
        The tmxcon root logger
    """
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING

    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a tmxcon module, e.g. get_logger('exporter') -> tmxcon.exporter."""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)
