"""Unit tests for BatchDispatcher.

Tests size- and time-triggered flushing, ordering, failure containment and
drain on shutdown.
"""

import threading
import time

import pytest

from govaudit.common.exceptions import DispatcherClosedError, TransportError
from govaudit.dispatch.batch import BatchDispatcher, DispatcherState
from govaudit.dispatch.failure_sink import DeliveryStatus, FailureSink
from govaudit.dispatch.sinks import Sink
from govaudit.logger.entries import AuditEntry, EntryLevel, LogEntry


class RecordingSink(Sink):
    """Sink that records every delivery."""

    def __init__(self, fail=False):
        self.batches = []
        self.singles = []
        self.closed = False
        self.fail = fail
        self.delivered = threading.Event()
        self._lock = threading.Lock()

    def deliver(self, entry):
        if self.fail:
            raise TransportError("sink unavailable")
        with self._lock:
            self.singles.append(entry)
        self.delivered.set()

    def deliver_batch(self, entries):
        if self.fail:
            raise TransportError("sink unavailable")
        with self._lock:
            self.batches.append(list(entries))
        self.delivered.set()

    def close(self):
        self.closed = True


class SlowFirstSink(RecordingSink):
    """Sink whose first single delivery is slow."""

    def deliver(self, entry):
        if entry.message == "m0":
            time.sleep(0.2)
        super().deliver(entry)


def _audit(n):
    return AuditEntry(action=f"action.{n}", resource_type="record", entity_id=str(n))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_dispatcher(sink):
    """Factory for dispatchers that are always shut down after the test."""
    created = []

    def factory(batch_size=3, batch_interval=10.0, target=None):
        dispatcher = BatchDispatcher(
            target or sink,
            batch_size=batch_size,
            batch_interval=batch_interval,
            register_atexit=False,
        )
        created.append(dispatcher)
        return dispatcher

    yield factory
    for dispatcher in created:
        dispatcher.shutdown(timeout=2)


class TestSizeTrigger:
    """Flushing when the queue reaches batch_size."""

    def test_five_entries_with_batch_size_three(self, make_dispatcher, sink):
        """One batch of 3 is flushed, 2 stay pending until shutdown."""
        dispatcher = make_dispatcher(batch_size=3)
        handles = [dispatcher.submit(_audit(i)) for i in range(5)]

        for handle in handles[:3]:
            assert handle.result(timeout=2) == DeliveryStatus.DELIVERED
        assert [e.entity_id for e in sink.batches[0]] == ["0", "1", "2"]
        assert dispatcher.queue_size == 2
        assert not handles[3].done()

        dispatcher.shutdown(timeout=2)

        assert [e.entity_id for e in sink.batches[1]] == ["3", "4"]
        assert handles[4].result(timeout=0) == DeliveryStatus.DELIVERED
        assert len(sink.batches) == 2


class TestTimeTrigger:
    """Flushing when the batch interval elapses."""

    def test_interval_flushes_once_in_order(self, make_dispatcher, sink):
        """Two entries with a large batch size are flushed together by the timer."""
        dispatcher = make_dispatcher(batch_size=100, batch_interval=0.1)

        first = dispatcher.submit(_audit("a"))
        second = dispatcher.submit(_audit("b"))
        assert dispatcher.state == DispatcherState.ACCUMULATING

        assert second.result(timeout=2) == DeliveryStatus.DELIVERED
        assert first.result(timeout=0) == DeliveryStatus.DELIVERED
        time.sleep(0.15)

        assert len(sink.batches) == 1
        assert [e.entity_id for e in sink.batches[0]] == ["a", "b"]
        assert dispatcher.state == DispatcherState.IDLE

    def test_size_flush_cancels_timer(self, make_dispatcher, sink):
        """A size-triggered flush leaves no stale timer behind."""
        dispatcher = make_dispatcher(batch_size=2, batch_interval=0.05)

        dispatcher.submit(_audit(1))
        dispatcher.submit(_audit(2)).result(timeout=2)
        time.sleep(0.15)

        assert len(sink.batches) == 1


class TestSingleDispatch:
    """Non-batched delivery."""

    def test_dispatch_single(self, make_dispatcher, sink):
        dispatcher = make_dispatcher()
        entry = LogEntry(level=EntryLevel.INFO, message="hello")

        status = dispatcher.dispatch_single(entry).result(timeout=2)

        assert status == DeliveryStatus.DELIVERED
        assert sink.singles == [entry]
        assert sink.batches == []

    def test_single_entries_keep_submission_order(self, make_dispatcher):
        """A slow first delivery does not let later entries overtake it."""
        sink = SlowFirstSink()
        dispatcher = make_dispatcher(target=sink)
        entries = [LogEntry(level=EntryLevel.INFO, message=f"m{i}") for i in range(6)]

        handles = [dispatcher.dispatch_single(entry) for entry in entries]
        for handle in handles:
            handle.result(timeout=2)

        assert [entry.message for entry in sink.singles] == [f"m{i}" for i in range(6)]


class TestFailures:
    """Delivery failures are contained and reported through handles."""

    def test_failed_batch_resolves_failed(self):
        failing = RecordingSink(fail=True)
        failure_sink = FailureSink()
        dispatcher = BatchDispatcher(
            failing, batch_size=2, batch_interval=10.0,
            failure_sink=failure_sink, register_atexit=False,
        )
        try:
            handles = [dispatcher.submit(_audit(i)) for i in range(2)]

            assert [h.result(timeout=2) for h in handles] == [DeliveryStatus.FAILED] * 2
            assert failure_sink.failures == 1
            assert dispatcher.get_stats()["entries_failed"] == 2
        finally:
            dispatcher.shutdown(timeout=2)

    def test_failure_does_not_block_later_batches(self, make_dispatcher, sink):
        dispatcher = make_dispatcher(batch_size=1)
        sink.fail = True
        assert dispatcher.submit(_audit(1)).result(timeout=2) == DeliveryStatus.FAILED

        sink.fail = False
        assert dispatcher.submit(_audit(2)).result(timeout=2) == DeliveryStatus.DELIVERED
        assert [e.entity_id for e in sink.batches[0]] == ["2"]


class TestShutdown:
    """Draining and closing."""

    def test_shutdown_drains_and_closes(self, make_dispatcher, sink):
        dispatcher = make_dispatcher(batch_size=10)
        handle = dispatcher.submit(_audit(1))

        dispatcher.shutdown(timeout=2)

        assert handle.result(timeout=0) == DeliveryStatus.DELIVERED
        assert dispatcher.state == DispatcherState.CLOSED
        assert sink.closed

    def test_submit_after_shutdown_raises(self, make_dispatcher):
        dispatcher = make_dispatcher()
        dispatcher.shutdown(timeout=2)

        with pytest.raises(DispatcherClosedError):
            dispatcher.submit(_audit(1))
        with pytest.raises(DispatcherClosedError):
            dispatcher.dispatch_single(LogEntry(level=EntryLevel.INFO, message="late"))

    def test_shutdown_is_idempotent(self, make_dispatcher, sink):
        dispatcher = make_dispatcher()
        dispatcher.shutdown(timeout=2)
        dispatcher.shutdown(timeout=2)

        assert dispatcher.state == DispatcherState.CLOSED

    def test_flush_waits_for_delivery(self, make_dispatcher, sink):
        dispatcher = make_dispatcher(batch_size=10)
        dispatcher.submit(_audit(1))

        assert dispatcher.flush(timeout=2) is True
        assert len(sink.batches) == 1
        assert dispatcher.get_stats()["entries_delivered"] == 1


class TestValidation:
    """Constructor argument checks."""

    def test_invalid_batch_settings(self, sink):
        with pytest.raises(ValueError):
            BatchDispatcher(sink, batch_size=0, register_atexit=False)
        with pytest.raises(ValueError):
            BatchDispatcher(sink, batch_interval=0, register_atexit=False)
