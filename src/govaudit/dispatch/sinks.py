"""Sinks - where flushed entries go.

The sink mode is chosen once when the client is built:
- NetworkSink: records go to the controller through a Transport
- LocalObserverSink: records are announced on an in-process EventEmitter
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from govaudit.common.constants import LogConstants, TransportConstants
from govaudit.common.exceptions import TransportError
from govaudit.dispatch.observers import EventEmitter
from govaudit.dispatch.transport import Transport
from govaudit.logger.entries import Entry

logger = logging.getLogger(__name__)


class Sink(ABC):
    """Abstract base class for delivery targets.

    Implementations raise on failure; the dispatcher terminates the error
    in its FailureSink.
    """

    @abstractmethod
    def deliver(self, entry: Entry) -> None:
        """Deliver a single, non-batched entry.

        Raises:
            TransportError: If delivery fails
        """
        pass

    @abstractmethod
    def deliver_batch(self, entries: Sequence[Entry]) -> None:
        """Deliver an ordered batch of entries.

        Raises:
            TransportError: If delivery fails
        """
        pass

    def close(self) -> None:
        """Release resources held by the sink."""
        pass


class LocalObserverSink(Sink):
    """Announces records on 'log' and 'log:batch' without any network call."""

    def __init__(self, emitter: EventEmitter):
        self.emitter = emitter

    def deliver(self, entry: Entry) -> None:
        self._emit(LogConstants.EVENT_LOG, entry.to_record())

    def deliver_batch(self, entries: Sequence[Entry]) -> None:
        self._emit(LogConstants.EVENT_LOG_BATCH, [entry.to_record() for entry in entries])

    def _emit(self, event: str, payload) -> None:
        try:
            self.emitter.emit(event, payload)
        except Exception as e:
            raise TransportError(f"Observer for '{event}' raised: {e}") from e


class NetworkSink(Sink):
    """Hands records to the transport, behind a circuit breaker.

    After CIRCUIT_MAX_FAILURES consecutive failures, network delivery is
    suspended for CIRCUIT_OPEN_SECONDS. Authentication failures (HTTP 401)
    do not count towards the threshold.
    """

    def __init__(
        self,
        transport: Transport,
        max_failures: int = TransportConstants.CIRCUIT_MAX_FAILURES,
        open_seconds: float = TransportConstants.CIRCUIT_OPEN_SECONDS,
        clock=time.monotonic,
    ):
        self.transport = transport
        self.max_failures = max_failures
        self.open_seconds = open_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._open_until: Optional[float] = None

    def deliver(self, entry: Entry) -> None:
        self._send(lambda: self.transport.send_log(entry.to_record()))

    def deliver_batch(self, entries: Sequence[Entry]) -> None:
        records = [entry.to_record() for entry in entries]
        self._send(lambda: self.transport.send_batch(records))

    @property
    def is_open(self) -> bool:
        """Whether network delivery is currently suspended."""
        with self._lock:
            return self._open_until is not None and self._clock() < self._open_until

    def _send(self, call) -> None:
        if self.is_open:
            raise TransportError("Network delivery suspended after repeated failures")

        try:
            call()
        except TransportError as e:
            self._record_failure(e)
            raise
        except Exception as e:
            self._record_failure(e)
            raise TransportError(f"Transport raised: {e}") from e

        with self._lock:
            self._consecutive_failures = 0
            self._open_until = None

    def _record_failure(self, error: Exception) -> None:
        if getattr(error, "status_code", None) == 401:
            return
        with self._lock:
            self._consecutive_failures += 1
            if self._consecutive_failures >= self.max_failures:
                self._open_until = self._clock() + self.open_seconds
                self._consecutive_failures = 0
                logger.warning(
                    f"Suspending network log delivery for {self.open_seconds:.0f}s "
                    f"after {self.max_failures} consecutive failures"
                )

    def close(self) -> None:
        self.transport.close()
