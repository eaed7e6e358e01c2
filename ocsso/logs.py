"""Logger setup.

Events go through the stdlib ``logging`` module to stderr and are rendered by
structlog either as ``key=value`` text or as one JSON object per line.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

LOGGER_NAME = "ocsso"

LOG_FORMATS = ("json", "text")

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    # Nothing is emitted above CRITICAL
    "none": logging.CRITICAL + 10,
}

_SHARED_PROCESSORS = [
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.processors.KeyValueRenderer(
        key_order=["timestamp", "level", "event"],
        drop_missing=True,
    )


def setup_logger(
        log_format: str = "text",
        log_level: str = "info",
        stream: Optional[TextIO] = None,
):
    """Configure logging and return the root bound logger.

    Args:
        log_format: 'json' or 'text' (anything else falls back to text)
        log_level: 'debug', 'info', 'warn', 'error' or 'none'
            (anything else falls back to info)
        stream: Output stream, stderr by default

    Returns:
        structlog bound logger; stages derive their own with ``bind()``
    """
    level = LOG_LEVELS.get(log_level, logging.INFO)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(log_format),
        ],
    )
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    return get_logger()


def get_logger(**context):
    """Return a bound logger for the package, optionally with context."""
    log = structlog.get_logger(LOGGER_NAME)
    if context:
        log = log.bind(**context)
    return log
