"""Logger - entry construction and the public logging API."""

from govaudit.logger.entries import (
    AuditEntry,
    Entry,
    EntryLevel,
    ErrorDetail,
    LogEntry,
)
from govaudit.logger.unified import ScopedLogger, UnifiedLogger, extract_error_detail
from govaudit.logger.compat import LoggingOptions, MetadataLogger
from govaudit.logger.factory import (
    clear_logger_context,
    clear_registered_logger,
    get_logger,
    register_logger,
    set_logger_context,
)

__all__ = [
    # Entries
    "AuditEntry",
    "Entry",
    "EntryLevel",
    "ErrorDetail",
    "LogEntry",
    # Loggers
    "UnifiedLogger",
    "ScopedLogger",
    "MetadataLogger",
    "LoggingOptions",
    "extract_error_detail",
    # Module-level access
    "get_logger",
    "register_logger",
    "clear_registered_logger",
    "set_logger_context",
    "clear_logger_context",
]
