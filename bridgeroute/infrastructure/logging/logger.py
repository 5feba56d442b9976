"""
Logging configuration for bridgeroute

A provider outage makes every adapter log the same fallback warning on each
quote round, so the console handler collapses repeats inside a time window.
"""
import logging
import sys
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional, Tuple

from bridgeroute.infrastructure.config.settings import LoggingSettings, settings

PACKAGE_LOGGER = "bridgeroute"
HANDLER_NAME = "bridgeroute-console"


class RepeatFilter(logging.Filter):
    """Drop a record once the same logger/level/message pair repeated too often in the window"""

    def __init__(self, window: float = 60.0, max_repeats: int = 3, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self.window = window
        self.max_repeats = max_repeats
        self.clock = clock
        self._seen: Dict[Tuple[str, int, str], Deque[float]] = defaultdict(deque)

    def filter(self, record: logging.LogRecord) -> bool:
        # errors always get through
        if record.levelno >= logging.ERROR:
            return True

        now = self.clock()
        stamps = self._seen[(record.name, record.levelno, record.getMessage())]
        while stamps and now - stamps[0] >= self.window:
            stamps.popleft()

        if len(stamps) >= self.max_repeats:
            return False

        stamps.append(now)
        return True


def setup_logging(config: Optional[LoggingSettings] = None, name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Attach the console handler to the package logger

    Safe to call repeatedly: the previous bridgeroute handler is replaced,
    handlers installed by the host application are left alone.

    Args:
        config: Logging settings (defaults to the global settings)
        name: Logger to configure

    Returns:
        Configured logger instance
    """
    config = config or settings.logging
    numeric_level = getattr(logging, config.level.upper(), logging.INFO)

    _quiet_http_loggers()

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for handler in [h for h in logger.handlers if h.get_name() == HANDLER_NAME]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name(HANDLER_NAME)
    console_handler.setLevel(numeric_level)
    if config.dedup_max_repeats > 0:
        console_handler.addFilter(RepeatFilter(config.dedup_window_seconds, config.dedup_max_repeats))
    console_handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(console_handler)

    logger.propagate = False
    return logger


def _quiet_http_loggers():
    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
