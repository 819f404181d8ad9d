"""Local publish/subscribe channel for hosts that persist entries themselves."""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventEmitter:
    """Minimal in-process event channel.

    Listeners run synchronously, in registration order, on the thread that
    emits. A listener exception propagates to the emitter's caller.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener; returns it for a later off()."""
        with self._lock:
            self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, event: str, payload: Any) -> int:
        """Call every listener of event with payload.

        Returns:
            Number of listeners notified.
        """
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            listener(payload)
        return len(listeners)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, []))
