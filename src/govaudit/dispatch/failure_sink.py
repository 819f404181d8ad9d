"""Failure Sink - the single place where delivery failures terminate.

Every dispatch or transform operation of the pipeline runs through
FailureSink.guard(). A failure is logged on the diagnostics logger and
discarded; it never reaches the code that called info()/error()/audit(),
and no future is ever left holding an unobserved exception.
"""

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from govaudit.common.logging import get_diagnostics_logger


class DeliveryStatus(str, Enum):
    """Outcome carried by every completion handle."""
    DELIVERED = "delivered"
    FAILED = "failed"
    DISCARDED = "discarded"
    FILTERED = "filtered"


def completed_handle(status: DeliveryStatus) -> "Future[DeliveryStatus]":
    """A handle that is already resolved."""
    handle: Future = Future()
    handle.set_result(status)
    return handle


def resolve_handles(handles: Iterable[Future], status: DeliveryStatus) -> None:
    """Resolve pending handles, skipping any already settled."""
    for handle in handles:
        if not handle.done():
            handle.set_result(status)


class FailureSink:
    """Catches, logs and discards pipeline failures."""

    def __init__(self, diagnostics: Optional[logging.Logger] = None):
        """Initialize failure sink.

        Args:
            diagnostics: Logger for failure records. Uses the
                govaudit.diagnostics logger if not provided.
        """
        self._diagnostics = diagnostics or get_diagnostics_logger()
        self._lock = threading.Lock()
        self._failures = 0
        self._last_failure: Optional[BaseException] = None

    def guard(
        self,
        operation: Callable[..., Any],
        *args: Any,
        description: str = "audit delivery",
        **kwargs: Any,
    ) -> bool:
        """Run an operation, terminating any exception here.

        Returns:
            True if the operation completed, False if it failed.
        """
        try:
            operation(*args, **kwargs)
            return True
        except Exception as e:
            self.record(e, description)
            return False

    def record(self, error: BaseException, description: str = "audit delivery") -> None:
        """Log and count a failure."""
        with self._lock:
            self._failures += 1
            self._last_failure = error
        self._diagnostics.warning(
            f"{description} failed: {type(error).__name__}: {error}"
        )

    def observe(self, future: Future) -> None:
        """Done-callback that consumes the outcome of a worker future."""
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.record(error, "dispatch worker")

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    @property
    def last_failure(self) -> Optional[BaseException]:
        with self._lock:
            return self._last_failure
