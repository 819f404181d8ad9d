"""Metadata Logger - explicit per-call metadata on top of UnifiedLogger.

Kept for call sites that pass identity fields with every call instead of
relying on the ambient context. Each call builds a ScopedLogger from the
options and delegates to it, so masking, batching and failure handling are
shared with the unified API.
"""

from concurrent.futures import Future
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from govaudit.dispatch.failure_sink import DeliveryStatus
from govaudit.logger.unified import UnifiedLogger


@dataclass
class LoggingOptions:
    """Identity fields attached to a single call."""
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    token: Optional[str] = None

    def to_partial(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class MetadataLogger:
    """Logger taking (message, context, options) on every call."""

    def __init__(self, unified: UnifiedLogger):
        self.unified = unified

    def _scoped(self, options: Optional[LoggingOptions]) -> UnifiedLogger:
        if options is None:
            return self.unified
        return self.unified.with_context(**options.to_partial())

    def info(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        options: Optional[LoggingOptions] = None,
    ) -> "Future[DeliveryStatus]":
        return self._scoped(options).info(message, context)

    def debug(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        options: Optional[LoggingOptions] = None,
    ) -> "Future[DeliveryStatus]":
        return self._scoped(options).debug(message, context)

    def error(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        stack_trace: Optional[str] = None,
        options: Optional[LoggingOptions] = None,
    ) -> "Future[DeliveryStatus]":
        """Log an error with an optional preformatted stack trace.

        With a stack trace, the error detail carries the message and the
        trace and the context becomes the payload.
        """
        if stack_trace is None:
            return self._scoped(options).error(message, context)
        error_shaped = {**(context or {}), "message": message, "stack": stack_trace}
        return self._scoped(options).error(message, error_shaped)

    def audit(
        self,
        action: str,
        resource: str,
        context: Optional[Dict[str, Any]] = None,
        options: Optional[LoggingOptions] = None,
    ) -> "Future[DeliveryStatus]":
        """Record an audit event.

        'entityId', 'oldValues' and 'newValues' keys of context are lifted
        into the audit entry; any other keys are recorded as new values.
        """
        context = dict(context or {})
        camel_id = context.pop("entityId", None)
        snake_id = context.pop("entity_id", None)
        entity_id = camel_id or snake_id
        old_values = context.pop("oldValues", None)
        new_values = context.pop("newValues", None)
        if new_values is None and context:
            new_values = context
        return self._scoped(options).audit(action, resource, entity_id, old_values, new_values)
