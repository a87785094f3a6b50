import logging
import os
import sys
from typing import Optional, Union
from flask import Flask

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Client libraries that log every HTTP round trip at INFO
NOISY_LOGGERS = ('httpx', 'urllib3', 'hpack')


def _resolve_level(target: Union[str, Flask], log_level: Optional[str]) -> int:
    if log_level is None and isinstance(target, Flask):
        log_level = target.config.get("LOG_LEVEL")
    name = (log_level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def configure_logging(target: Union[str, Flask] = "moodflow", log_level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stdout handler to the application's logger tree.

    Args:
        target: Flask app (its import name becomes the logger name) or a logger name
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to the
                   app's LOG_LEVEL setting, then the LOG_LEVEL environment variable, then INFO

    Returns:
        The configured logger
    """
    level = _resolve_level(target, log_level)
    logger = logging.getLogger(target.name if isinstance(target, Flask) else str(target))
    logger.setLevel(level)

    # create_app may run many times in one process (tests)
    if not any(getattr(h, '_moodflow', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._moodflow = True
        logger.addHandler(handler)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger
