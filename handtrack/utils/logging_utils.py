"""
Logging Utilities

All package loggers live under the ``handtrack`` namespace and every line
is tagged with the pipeline stage that emitted it (``detection``,
``tracking``, ``hand``, ``inference``, ``pipeline``, ...).

Levels:
    INFO    - model loading and configuration changes
    DEBUG   - per-frame scheduling (detect / predict / anchor, new tracks)
    WARNING - inference failures that drop a stage for one frame

Per-frame DEBUG output is noisy at video rate, so it is switched on
separately with ``frame_debug`` rather than through the global level.

Usage:
    from handtrack.utils.logging_utils import setup_logging, get_logger

    setup_logging(frame_debug=True)
    logger = get_logger(__name__)
    logger.debug("Frame 12: running detector")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm


PACKAGE_LOGGER = "handtrack"

DEFAULT_FORMAT = '%(asctime)s %(levelname)-7s [%(stage)s] %(message)s'
DATE_FORMAT = '%H:%M:%S'

# Loggers whose DEBUG output is emitted once per frame
FRAME_STAGES = ('pipeline', 'detection', 'tracking', 'hand')


def get_logger(name: str) -> logging.Logger:
    """
    Logger scoped under the ``handtrack`` namespace.

    Module names inside the package are used as-is; anything else
    (scripts, ``__main__``) is nested below ``handtrack``.
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name.strip('_') or 'main'}")


class StageFilter(logging.Filter):
    """Adds ``record.stage``: the first name component below ``handtrack``."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = record.name.split('.')
        if parts[0] == PACKAGE_LOGGER and len(parts) > 1:
            record.stage = parts[1]
        else:
            record.stage = parts[0]
        return True


class TqdmLoggingHandler(logging.StreamHandler):
    """Writes through ``tqdm.write`` so log lines land above progress bars."""

    def emit(self, record: logging.LogRecord):
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    frame_debug: bool = False,
    use_tqdm: bool = False,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure the ``handtrack`` logger tree.

    Args:
        level: Level for the package logger
        log_file: Optional file that receives the same lines
        frame_debug: Lower the per-frame stages to DEBUG
        use_tqdm: Route console output through tqdm
        format_string: Override for ``DEFAULT_FORMAT``

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    package_logger.propagate = False

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    stage_filter = StageFilter()

    handlers = [TqdmLoggingHandler(sys.stdout) if use_tqdm else logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(stage_filter)
        package_logger.addHandler(handler)

    frame_level = logging.DEBUG if frame_debug else logging.NOTSET
    for stage in FRAME_STAGES:
        logging.getLogger(f"{PACKAGE_LOGGER}.{stage}").setLevel(frame_level)

    return package_logger
