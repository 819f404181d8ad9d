"""Batch Dispatcher - accumulates entries and flushes them to a sink.

State machine:
    IDLE -> ACCUMULATING   first entry arms the flush timer
    ACCUMULATING -> FLUSHING   queue reaches batch_size, or the timer fires
    FLUSHING -> IDLE       once delivery of the batch has been initiated
    any -> DRAINING -> CLOSED   on shutdown(); the remainder is flushed

Batches are delivered on a small worker pool and single entries on a
one-worker queue; neither is awaited by the state machine. Every delivery is wrapped by the FailureSink, and every entry's
completion handle resolves to a DeliveryStatus.
"""

import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from govaudit.common.constants import AuditConstants
from govaudit.common.exceptions import DispatcherClosedError
from govaudit.dispatch.failure_sink import (
    DeliveryStatus,
    FailureSink,
    resolve_handles,
)
from govaudit.dispatch.sinks import Sink
from govaudit.logger.entries import Entry

logger = logging.getLogger(__name__)

Batch = List[Tuple[Entry, Future]]


class DispatcherState(str, Enum):
    """Lifecycle states of the dispatcher."""
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    DRAINING = "draining"
    CLOSED = "closed"


class BatchDispatcher:
    """Size/time-triggered batching in front of a single sink."""

    DEFAULT_BATCH_SIZE = AuditConstants.DEFAULT_BATCH_SIZE
    DEFAULT_BATCH_INTERVAL = AuditConstants.DEFAULT_BATCH_INTERVAL_MS / 1000.0
    DEFAULT_SHUTDOWN_TIMEOUT = AuditConstants.SHUTDOWN_TIMEOUT_SECONDS

    def __init__(
        self,
        sink: Sink,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_interval: float = DEFAULT_BATCH_INTERVAL,
        failure_sink: Optional[FailureSink] = None,
        max_workers: int = AuditConstants.DISPATCH_WORKERS,
        register_atexit: bool = True,
    ):
        """Initialize batch dispatcher.

        Args:
            sink: Delivery target, fixed for the dispatcher's lifetime.
            batch_size: Queue length that triggers an immediate flush.
            batch_interval: Seconds after the first queued entry before a
                timed flush.
            failure_sink: Where delivery failures terminate.
            max_workers: Size of the batch delivery worker pool.
            register_atexit: Whether to drain on interpreter exit.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if batch_interval <= 0:
            raise ValueError("batch_interval must be positive")

        self.sink = sink
        self.batch_size = batch_size
        self.batch_interval = batch_interval
        self.failure_sink = failure_sink or FailureSink()

        self._lock = threading.RLock()
        self._queue: Batch = []
        self._state = DispatcherState.IDLE
        self._timer: Optional[threading.Timer] = None
        self._timer_generation = 0

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="AuditDispatch",
        )
        # One worker keeps single entries in submission order
        self._single_executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="AuditDispatchSingle",
        )
        self._inflight: Set[Future] = set()

        # Statistics
        self._batches_flushed = 0
        self._entries_delivered = 0
        self._entries_failed = 0

        if register_atexit:
            atexit.register(self.shutdown)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, entry: Entry) -> "Future[DeliveryStatus]":
        """Queue an entry for the next batch.

        Returns:
            Handle resolved once the entry's batch has been delivered.

        Raises:
            DispatcherClosedError: If shutdown() has been called.
        """
        handle: Future = Future()
        with self._lock:
            self._ensure_open()
            self._queue.append((entry, handle))

            if len(self._queue) >= self.batch_size:
                self._flush_locked()
            elif self._state == DispatcherState.IDLE:
                self._state = DispatcherState.ACCUMULATING
                self._arm_timer_locked()

        return handle

    def dispatch_single(self, entry: Entry) -> "Future[DeliveryStatus]":
        """Deliver one entry on its own, bypassing the batch window.

        Single entries are delivered one at a time in submission order, so
        a call chain's info/error records reach observers in the order they
        were logged. Batches are delivered independently of them.

        Raises:
            DispatcherClosedError: If shutdown() has been called.
        """
        handle: Future = Future()
        with self._lock:
            self._ensure_open()
            self._start_delivery(
                self._single_executor, self.sink.deliver, entry, [handle], "log delivery"
            )
        return handle

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Flush the current queue now and wait for in-flight deliveries.

        Returns:
            True if every delivery finished within timeout.
        """
        with self._lock:
            if self._queue and self._state not in (DispatcherState.DRAINING, DispatcherState.CLOSED):
                self._flush_locked()
            pending = set(self._inflight)

        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._state in (DispatcherState.DRAINING, DispatcherState.CLOSED):
            raise DispatcherClosedError(
                details={"state": self._state.value}
            )

    def _arm_timer_locked(self) -> None:
        self._timer_generation += 1
        self._timer = threading.Timer(
            self.batch_interval,
            self._on_timer,
            args=(self._timer_generation,),
        )
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # A timer that already fired but is waiting on the lock becomes stale
        self._timer_generation += 1

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                return
            if self._state != DispatcherState.ACCUMULATING or not self._queue:
                return
            self._flush_locked()

    def _take_batch_locked(self) -> Batch:
        batch = self._queue
        self._queue = []
        return batch

    def _flush_locked(self) -> None:
        self._state = DispatcherState.FLUSHING
        self._cancel_timer_locked()
        batch = self._take_batch_locked()
        self._start_batch(batch)
        self._state = DispatcherState.IDLE

    def _start_batch(self, batch: Batch) -> None:
        entries = [entry for entry, _ in batch]
        handles = [handle for _, handle in batch]
        self._batches_flushed += 1
        self._start_delivery(
            self._executor,
            self.sink.deliver_batch,
            entries,
            handles,
            f"batch delivery of {len(entries)} entries",
        )

    def _start_delivery(
        self,
        executor: ThreadPoolExecutor,
        operation: Callable,
        payload,
        handles: List[Future],
        description: str,
    ) -> None:
        try:
            future = executor.submit(self._deliver, operation, payload, handles, description)
        except RuntimeError:
            # Executor already torn down (interpreter exit); deliver inline
            self._deliver(operation, payload, handles, description)
            return

        self._inflight.add(future)
        future.add_done_callback(self._on_delivery_done)

    def _on_delivery_done(self, future: Future) -> None:
        self.failure_sink.observe(future)
        with self._lock:
            self._inflight.discard(future)

    def _deliver(self, operation: Callable, payload, handles: List[Future], description: str) -> None:
        ok = self.failure_sink.guard(operation, payload, description=description)
        status = DeliveryStatus.DELIVERED if ok else DeliveryStatus.FAILED
        with self._lock:
            if ok:
                self._entries_delivered += len(handles)
            else:
                self._entries_failed += len(handles)
        resolve_handles(handles, status)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Drain remaining entries as a final batch, then close.

        Args:
            timeout: Maximum time to wait for in-flight deliveries. Uses
                default if None.
        """
        with self._lock:
            if self._state in (DispatcherState.DRAINING, DispatcherState.CLOSED):
                return  # Already shutdown
            self._state = DispatcherState.DRAINING
            self._cancel_timer_locked()
            final_batch = self._take_batch_locked()
            pending = set(self._inflight)

        timeout = timeout if timeout is not None else self.DEFAULT_SHUTDOWN_TIMEOUT
        logger.info("Shutting down audit dispatcher...")

        if pending:
            _, not_done = wait(pending, timeout=timeout)
            if not_done:
                logger.warning(f"{len(not_done)} audit deliveries still running at shutdown")

        if final_batch:
            with self._lock:
                self._batches_flushed += 1
            # Drained on the calling thread so exit-time shutdown still delivers
            self._deliver(
                self.sink.deliver_batch,
                [entry for entry, _ in final_batch],
                [handle for _, handle in final_batch],
                f"final batch delivery of {len(final_batch)} entries",
            )

        self._executor.shutdown(wait=False)
        self._single_executor.shutdown(wait=False)
        self.failure_sink.guard(self.sink.close, description="sink close")

        with self._lock:
            self._state = DispatcherState.CLOSED

        logger.info(
            f"Audit dispatcher shutdown complete. "
            f"Batches: {self._batches_flushed}, "
            f"Delivered: {self._entries_delivered}, "
            f"Failed: {self._entries_failed}"
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Get dispatcher statistics."""
        with self._lock:
            return {
                "state": self._state.value,
                "queue_size": len(self._queue),
                "batches_flushed": self._batches_flushed,
                "entries_delivered": self._entries_delivered,
                "entries_failed": self._entries_failed,
                "inflight": len(self._inflight),
            }

    @property
    def state(self) -> DispatcherState:
        with self._lock:
            return self._state

    @property
    def queue_size(self) -> int:
        """Current number of entries waiting for a flush."""
        with self._lock:
            return len(self._queue)

    @property
    def is_running(self) -> bool:
        """Whether the dispatcher still accepts entries."""
        return self.state not in (DispatcherState.DRAINING, DispatcherState.CLOSED)
