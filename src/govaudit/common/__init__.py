"""Common utilities - logging, config, exceptions."""

from govaudit.common.logging.logger import configure_logger, get_diagnostics_logger
from govaudit.common.config import Config, get_config, reset_config
from govaudit.common.exceptions import (
    GovAuditException,
    ConfigurationError,
    TransportError,
    DispatcherClosedError,
)

__all__ = [
    # Logging
    "configure_logger",
    "get_diagnostics_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "GovAuditException",
    "ConfigurationError",
    "TransportError",
    "DispatcherClosedError",
]
