"""Centralized logging configuration."""

import logging
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that get their own handler; None follows the app level
THIRD_PARTY_LOGGERS: Dict[str, Optional[int]] = {
    "uvicorn": None,
    "uvicorn.access": None,
    "uvicorn.error": None,
    "httpx": None,
    "fastapi": None,
    "sqlalchemy.engine": logging.WARNING,
}


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _replace_handlers(logger: logging.Logger, level: int, formatter: logging.Formatter) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def configure_logging(level: str = "INFO"):
    """
    Configure a consistent logging format for the entire application.

    Args:
        level: Level name from LOG_LEVEL; unknown names fall back to INFO.
            DEBUG also turns on SQL statement logging.
    """
    log_level = _resolve_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    _replace_handlers(root_logger, log_level, formatter)

    for logger_name, floor in THIRD_PARTY_LOGGERS.items():
        logger = logging.getLogger(logger_name)
        if floor is not None and log_level > logging.DEBUG:
            logger.setLevel(max(floor, log_level))
        else:
            logger.setLevel(log_level)

        # Own handler, no propagation: avoids duplicate lines via root
        logger.propagate = False
        _replace_handlers(logger, log_level, formatter)
