"""Logging helpers."""

from govaudit.common.logging.logger import configure_logger, get_diagnostics_logger

__all__ = ["configure_logger", "get_diagnostics_logger"]
