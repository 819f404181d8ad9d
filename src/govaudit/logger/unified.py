"""Unified Logger - builds, masks and dispatches entries.

The logger never raises into its caller. Every call returns a completion
handle (a concurrent.futures.Future) that resolves to a DeliveryStatus;
awaiting it is optional.

Example:
    log = get_logger()
    log.info("Order placed", {"orderId": "o-1", "card": {"cvv": "123"}})
    log.audit("user.updated", "user", "u-42", old_values=before, new_values=after)
"""

import dataclasses
import logging
import traceback
from collections.abc import Mapping
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from govaudit.common.constants import LogConstants
from govaudit.common.exceptions import DispatcherClosedError
from govaudit.context.correlation import generate_correlation_id
from govaudit.context.jwt_context import extract_token_context
from govaudit.context.store import ContextSnapshot, ContextStore, default_store
from govaudit.dispatch.failure_sink import (
    DeliveryStatus,
    FailureSink,
    completed_handle,
)
from govaudit.logger.entries import AuditEntry, Entry, EntryLevel, ErrorDetail, LogEntry
from govaudit.masking.masker import Masker

if TYPE_CHECKING:
    from govaudit.dispatch.batch import BatchDispatcher

logger = logging.getLogger(__name__)

_ERROR_KEYS = ("name", "message", "stack")


def _format_stack(error: BaseException) -> Optional[str]:
    if error.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def _detail_text(value: Any, masker: Optional[Masker]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    # Structured values are rendered only after redaction
    return str(masker.mask(value) if masker is not None else value)


def _object_fields(value: Any) -> Dict[str, Any]:
    if isinstance(value, BaseModel):
        return dict(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return {k: v for k, v in getattr(value, "__dict__", {}).items() if not k.startswith("_")}


def extract_error_detail(value: Any, masker: Optional[Masker] = None) -> Tuple[Optional[ErrorDetail], Any]:
    """Split the second argument of error() into error detail and payload.

    Capability test, not a type switch:
    - an exception carries name, message and formatted traceback
    - a plain string is the error message
    - a mapping with a 'message' or 'stack' key is error-shaped; its other
      keys stay in the payload
    - an object exposing 'message' or 'stack' attributes is error-shaped;
      its other fields stay in the payload
    - anything else is the payload

    Args:
        value: The error or payload passed to error().
        masker: Redacts non-string name/message/stack values before they
            are rendered into the error detail.

    Returns:
        (error_detail, payload)
    """
    if value is None:
        return None, None

    if isinstance(value, BaseException):
        return ErrorDetail(
            name=type(value).__name__,
            message=str(value),
            stack=_format_stack(value),
        ), None

    if isinstance(value, str):
        return ErrorDetail(message=value), None

    if isinstance(value, Mapping):
        if "message" not in value and "stack" not in value:
            return None, value
        detail = ErrorDetail(
            name=_detail_text(value.get("name"), masker),
            message=_detail_text(value.get("message"), masker),
            stack=_detail_text(value.get("stack"), masker),
        )
        rest = {k: v for k, v in value.items() if k not in _ERROR_KEYS}
        return detail, rest or None

    if hasattr(value, "message") or hasattr(value, "stack"):
        detail = ErrorDetail(
            name=_detail_text(getattr(value, "name", None), masker) or type(value).__name__,
            message=_detail_text(getattr(value, "message", None), masker),
            stack=_detail_text(getattr(value, "stack", None), masker),
        )
        rest = {k: v for k, v in _object_fields(value).items() if k not in _ERROR_KEYS}
        return detail, rest or None

    return None, value


def _normalize_keys(partial: Dict[str, Any]) -> Dict[str, str]:
    return {to_snake(k): str(v) for k, v in partial.items() if v is not None}


class UnifiedLogger:
    """Ambient-context logger.

    Context is read from the ContextStore at the moment each entry is
    built, so call sites pass only the message and an optional payload.
    """

    def __init__(
        self,
        dispatcher: "BatchDispatcher",
        masker: Masker,
        store: ContextStore = default_store,
        failure_sink: Optional[FailureSink] = None,
        client_id: Optional[str] = None,
        debug_enabled: bool = False,
    ):
        """Initialize unified logger.

        Args:
            dispatcher: Receives every built entry.
            masker: Redacts payload, old_values and new_values.
            store: Ambient context source.
            failure_sink: Where construction and dispatch failures end.
                Uses the dispatcher's sink if not provided.
            client_id: Prefix for generated correlation ids.
            debug_enabled: Whether debug() entries are emitted.
        """
        self.dispatcher = dispatcher
        self.masker = masker
        self.store = store
        self.failure_sink = failure_sink or dispatcher.failure_sink
        self.client_id = client_id
        self.debug_enabled = debug_enabled
        self._bound: Dict[str, str] = {}
        self._extra: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def info(self, message: str, payload: Any = None) -> "Future[DeliveryStatus]":
        """Log an informational message."""
        return self._emit(lambda: self._build_log(EntryLevel.INFO, message, payload))

    def debug(self, message: str, payload: Any = None) -> "Future[DeliveryStatus]":
        """Log a debug message; filtered unless debug is enabled."""
        if not self.debug_enabled:
            return completed_handle(DeliveryStatus.FILTERED)
        return self._emit(lambda: self._build_log(EntryLevel.DEBUG, message, payload))

    def error(self, message: str, error_or_payload: Any = None) -> "Future[DeliveryStatus]":
        """Log an error.

        Args:
            message: What went wrong.
            error_or_payload: An exception, an error-shaped value, a string
                message, or a plain payload.
        """
        def build() -> LogEntry:
            detail, payload = extract_error_detail(error_or_payload, self.masker)
            return self._build_log(EntryLevel.ERROR, message, payload, detail)

        return self._emit(build)

    def audit(
        self,
        action: str,
        resource_type: str,
        entity_id: Optional[str] = None,
        old_values: Any = None,
        new_values: Any = None,
    ) -> "Future[DeliveryStatus]":
        """Record an action on a resource in the audit trail.

        Audit entries are batched; they are never filtered by log level.
        An empty entity_id is recorded as 'unknown'.
        """
        def build() -> AuditEntry:
            return AuditEntry(
                action=str(action),
                resource_type=str(resource_type),
                entity_id=str(entity_id) if entity_id else LogConstants.UNKNOWN_ENTITY,
                old_values=self.masker.mask(old_values) if old_values is not None else None,
                new_values=self.masker.mask(new_values) if new_values is not None else None,
                actor_context=self.capture_context(),
            )

        return self._emit(build, batched=True)

    def with_context(self, **partial: Any) -> "ScopedLogger":
        """Logger whose entries carry extra context fields.

        The ambient store is not modified; bound values take precedence
        over ambient ones.
        """
        return ScopedLogger(self, partial)

    def with_token(self, token: Optional[str]) -> "ScopedLogger":
        """Logger whose entries take user and session ids from token.

        Ids set explicitly (ambient or bound) still take precedence.
        """
        return ScopedLogger(self, {"token": token})

    def add_context(self, key: str, value: Any) -> "ScopedLogger":
        """Logger whose info/debug/error payloads carry key=value.

        Added fields are masked with the rest of the payload; a key passed
        in the call's own payload wins over an added one.
        """
        return ScopedLogger(self, {}, extra={key: value})

    def with_response_metrics(
        self,
        response_size: Optional[int] = None,
        duration_ms: Optional[float] = None,
    ) -> "ScopedLogger":
        """Add upstream response size (bytes) and duration to payloads."""
        extra = {"responseSize": response_size, "durationMs": duration_ms}
        return ScopedLogger(self, {}, extra={k: v for k, v in extra.items() if v is not None})

    def with_credential_context(
        self,
        credential_id: Optional[str] = None,
        credential_type: Optional[str] = None,
    ) -> "ScopedLogger":
        """Add the credential used for an upstream call to payloads."""
        extra = {"credentialId": credential_id, "credentialType": credential_type}
        return ScopedLogger(self, {}, extra={k: v for k, v in extra.items() if v is not None})

    # ------------------------------------------------------------------
    # Entry construction
    # ------------------------------------------------------------------

    def capture_context(self) -> ContextSnapshot:
        """Snapshot of the ambient context plus bound fields.

        Missing user and session ids are read from the context token, and a
        correlation id is generated when none is present.
        """
        snapshot = self.store.get_context().merge(**self._bound)

        if snapshot.token and (snapshot.user_id is None or snapshot.session_id is None):
            claims = extract_token_context(snapshot.token)
            fill = {
                name: claims.get(name)
                for name in ("user_id", "session_id")
                if getattr(snapshot, name) is None
            }
            snapshot = snapshot.merge(**fill)

        if snapshot.correlation_id is None:
            snapshot = snapshot.merge(correlation_id=generate_correlation_id(self.client_id))

        return snapshot

    def _with_extra(self, payload: Any) -> Any:
        if not self._extra:
            return payload
        if payload is None:
            return dict(self._extra)
        if isinstance(payload, Mapping):
            return {**self._extra, **payload}
        return {**self._extra, "payload": payload}

    def _build_log(
        self,
        level: EntryLevel,
        message: str,
        payload: Any,
        error_detail: Optional[ErrorDetail] = None,
    ) -> LogEntry:
        payload = self._with_extra(payload)
        return LogEntry(
            level=level,
            message=str(message),
            context=self.capture_context(),
            payload=self.masker.mask(payload) if payload is not None else None,
            error_detail=error_detail,
        )

    def _emit(self, build: Callable[[], Entry], batched: bool = False) -> "Future[DeliveryStatus]":
        try:
            entry = build()
        except Exception as e:
            self.failure_sink.record(e, "entry construction")
            return completed_handle(DeliveryStatus.DISCARDED)

        try:
            if batched:
                return self.dispatcher.submit(entry)
            return self.dispatcher.dispatch_single(entry)
        except DispatcherClosedError as e:
            self.failure_sink.record(e, f"{entry.level.value} entry after shutdown")
            return completed_handle(DeliveryStatus.DISCARDED)
        except Exception as e:
            self.failure_sink.record(e, "dispatch")
            return completed_handle(DeliveryStatus.FAILED)


class ScopedLogger(UnifiedLogger):
    """A UnifiedLogger bound to a locally extended context.

    Builders chain, each returning a new ScopedLogger:

        log.with_token(token).add_context("jobId", "j-1").info("Sync started")
    """

    def __init__(
        self,
        parent: UnifiedLogger,
        partial: Dict[str, Any],
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            parent.dispatcher,
            parent.masker,
            store=parent.store,
            failure_sink=parent.failure_sink,
            client_id=parent.client_id,
            debug_enabled=parent.debug_enabled,
        )
        self._bound = {**parent._bound, **_normalize_keys(partial)}
        self._extra = {**parent._extra, **(extra or {})}

    @property
    def bound_context(self) -> Dict[str, str]:
        """Fields this logger adds on top of the ambient context."""
        return {k: v for k, v in self._bound.items() if k != "token"}

    @property
    def added_context(self) -> Dict[str, Any]:
        """Fields merged into every info/debug/error payload."""
        return dict(self._extra)
