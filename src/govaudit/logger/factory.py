"""Module-level access to the process-wide logger.

An AuditClient registers its UnifiedLogger here when it is built, after
which any call site can do:

    from govaudit import get_logger, set_logger_context

    set_logger_context(user_id="u-1")
    get_logger().info("Profile viewed")
"""

import threading
from typing import Any, Optional

from govaudit.common.exceptions import ConfigurationError
from govaudit.context.store import ContextSnapshot, default_store
from govaudit.logger.unified import UnifiedLogger

_registered: Optional[UnifiedLogger] = None
_registry_lock = threading.Lock()


def register_logger(logger: UnifiedLogger) -> None:
    """Make logger the one returned by get_logger()."""
    global _registered
    with _registry_lock:
        _registered = logger


def clear_registered_logger(logger: Optional[UnifiedLogger] = None) -> None:
    """Forget the registered logger.

    Args:
        logger: Only clear if this is the registered logger. Clears
            unconditionally if None.
    """
    global _registered
    with _registry_lock:
        if logger is None or _registered is logger:
            _registered = None


def get_logger() -> UnifiedLogger:
    """Get the registered logger.

    Raises:
        ConfigurationError: If no AuditClient has been created yet.
    """
    with _registry_lock:
        if _registered is None:
            raise ConfigurationError(
                "No logger registered; create an AuditClient before calling get_logger()"
            )
        return _registered


def set_logger_context(**partial: Any) -> ContextSnapshot:
    """Merge fields into the ambient context of the current call chain."""
    return default_store.set_context(**partial)


def clear_logger_context() -> None:
    """Reset the ambient context of the current call chain."""
    default_store.clear_context()
