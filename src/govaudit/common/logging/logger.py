"""Centralized logging configuration."""

import logging

from govaudit.common.constants import LogConstants


def configure_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Get a logger with a stream handler in the standard format."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_diagnostics_logger() -> logging.Logger:
    """Logger for failures of the pipeline itself.

    Records written here never re-enter the audit pipeline and are not
    masked, so a failing sink cannot trigger another delivery.
    """
    return logging.getLogger(LogConstants.DIAGNOSTICS_LOGGER)
