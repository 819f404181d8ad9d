"""govaudit - audit and log emission for governed client applications.

Records are built with the caller's ambient context, masked before they
leave the process, and delivered in batches to the governance controller
or to in-process observers.
"""

from govaudit.client import AuditClient
from govaudit.common.config import Config, get_config, reset_config
from govaudit.common.exceptions import (
    ConfigurationError,
    DispatcherClosedError,
    GovAuditException,
    TransportError,
)
from govaudit.context.store import ContextSnapshot, ContextStore, default_store
from govaudit.dispatch.failure_sink import DeliveryStatus
from govaudit.logger import (
    AuditEntry,
    LogEntry,
    LoggingOptions,
    MetadataLogger,
    ScopedLogger,
    UnifiedLogger,
    clear_logger_context,
    get_logger,
    set_logger_context,
)
from govaudit.masking import Masker, SensitiveFieldRegistry

__version__ = "0.1.0"

__all__ = [
    "AuditClient",
    "Config",
    "get_config",
    "reset_config",
    # Logging API
    "get_logger",
    "set_logger_context",
    "clear_logger_context",
    "UnifiedLogger",
    "ScopedLogger",
    "MetadataLogger",
    "LoggingOptions",
    "LogEntry",
    "AuditEntry",
    "DeliveryStatus",
    # Context
    "ContextSnapshot",
    "ContextStore",
    "default_store",
    # Masking
    "Masker",
    "SensitiveFieldRegistry",
    # Exceptions
    "GovAuditException",
    "ConfigurationError",
    "TransportError",
    "DispatcherClosedError",
]
