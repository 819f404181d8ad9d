"""Dispatch - batching, sinks and failure containment."""

from govaudit.dispatch.failure_sink import (
    DeliveryStatus,
    FailureSink,
    completed_handle,
    resolve_handles,
)
from govaudit.dispatch.observers import EventEmitter
from govaudit.dispatch.transport import HttpTransport, Transport
from govaudit.dispatch.sinks import LocalObserverSink, NetworkSink, Sink
from govaudit.dispatch.batch import BatchDispatcher, DispatcherState

__all__ = [
    # Failure containment
    "DeliveryStatus",
    "FailureSink",
    "completed_handle",
    "resolve_handles",
    # Sinks
    "EventEmitter",
    "HttpTransport",
    "Transport",
    "Sink",
    "LocalObserverSink",
    "NetworkSink",
    # Batching
    "BatchDispatcher",
    "DispatcherState",
]
