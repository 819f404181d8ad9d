"""Unit tests for EventEmitter."""

import pytest

from govaudit.dispatch.observers import EventEmitter


class TestEventEmitter:
    """Tests for the local observer channel."""

    def test_listeners_called_in_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("log", lambda payload: calls.append(("first", payload)))
        emitter.on("log", lambda payload: calls.append(("second", payload)))

        notified = emitter.emit("log", {"message": "x"})

        assert notified == 2
        assert calls == [("first", {"message": "x"}), ("second", {"message": "x"})]

    def test_events_are_separate(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("log:batch", calls.append)

        assert emitter.emit("log", {}) == 0
        assert calls == []

    def test_off_removes_listener(self):
        emitter = EventEmitter()
        calls = []
        listener = emitter.on("log", calls.append)

        emitter.off("log", listener)
        emitter.off("log", listener)
        emitter.emit("log", {})

        assert calls == []
        assert emitter.listener_count("log") == 0

    def test_listener_exception_propagates(self):
        emitter = EventEmitter()

        def broken(payload):
            raise RuntimeError("listener failed")

        emitter.on("log", broken)

        with pytest.raises(RuntimeError):
            emitter.emit("log", {})
