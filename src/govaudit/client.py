"""AuditClient - wires configuration, masking, dispatch and the logger.

Usage:
    client = AuditClient()               # configuration from GOVAUDIT_* env vars
    client.log.info("Service started")

    # Local observer mode
    client = AuditClient(Config(emit_events=True))
    client.on("log:batch", persist_records)

The client registers its logger for module-level get_logger() and drains
its dispatcher on interpreter exit.
"""

import atexit
import logging
from typing import Any, Callable, Optional

from govaudit.common.config import Config, get_config
from govaudit.common.constants import LogConstants
from govaudit.common.exceptions import ConfigurationError
from govaudit.common.logging import configure_logger
from govaudit.context.store import ContextStore, default_store
from govaudit.dispatch.batch import BatchDispatcher
from govaudit.dispatch.failure_sink import FailureSink
from govaudit.dispatch.observers import EventEmitter
from govaudit.dispatch.sinks import LocalObserverSink, NetworkSink, Sink
from govaudit.dispatch.transport import HttpTransport, Transport
from govaudit.logger.compat import MetadataLogger
from govaudit.logger.factory import clear_registered_logger, register_logger
from govaudit.logger.unified import UnifiedLogger
from govaudit.masking.masker import Masker
from govaudit.masking.registry import SensitiveFieldRegistry

logger = logging.getLogger(__name__)


class AuditClient:
    """Entry point of the SDK's logging subsystem.

    Everything that can fail at startup (configuration values, the custom
    sensitive-fields document) fails here with ConfigurationError. After
    construction, no logging call raises.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[Transport] = None,
        emitter: Optional[EventEmitter] = None,
        store: ContextStore = default_store,
        register: bool = True,
    ):
        """Initialize audit client.

        Args:
            config: Client configuration. Uses the global config if None.
            transport: Network transport. Built from controller_url if None.
            emitter: Observer channel for emit_events mode.
            store: Ambient context source.
            register: Whether get_logger() should return this client's logger.
        """
        self.config = config or get_config()
        configure_logger(LogConstants.DIAGNOSTICS_LOGGER, self.config.log_level.value)
        self.failure_sink = FailureSink()
        self.emitter = emitter or EventEmitter()

        self.registry = SensitiveFieldRegistry.load(self.config.sensitive_fields_config)
        self.masker = Masker(self.registry)

        self.sink = self._build_sink(transport)
        self.dispatcher = BatchDispatcher(
            self.sink,
            batch_size=self.config.audit_batch_size,
            batch_interval=self.config.batch_interval_seconds,
            failure_sink=self.failure_sink,
            register_atexit=False,
        )
        self.log = UnifiedLogger(
            self.dispatcher,
            self.masker,
            store=store,
            failure_sink=self.failure_sink,
            client_id=self.config.client_id,
            debug_enabled=self.config.debug_enabled,
        )
        self.metadata_log = MetadataLogger(self.log)

        self._registered = register
        if register:
            register_logger(self.log)
        atexit.register(self.shutdown)

        logger.info(
            f"AuditClient ready "
            f"(mode={'observer' if self.config.emit_events else 'network'}, "
            f"batch_size={self.config.audit_batch_size}, "
            f"batch_interval_ms={self.config.audit_batch_interval_ms})"
        )

    def _build_sink(self, transport: Optional[Transport]) -> Sink:
        if self.config.emit_events:
            return LocalObserverSink(self.emitter)

        if transport is None:
            if not self.config.controller_url:
                raise ConfigurationError("controller_url is required for network delivery")
            transport = HttpTransport(
                self.config.controller_url,
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
                timeout=self.config.transport_timeout,
            )
        return NetworkSink(transport)

    # ------------------------------------------------------------------
    # Observer events
    # ------------------------------------------------------------------

    def on(self, event: str, listener: Callable[[Any], None]) -> Callable[[Any], None]:
        """Subscribe to 'log' or 'log:batch' (emit_events mode only)."""
        if not self.config.emit_events:
            logger.warning(
                f"Listener registered for '{event}' but emit_events is disabled; "
                f"records go to the controller instead"
            )
        return self.emitter.on(event, listener)

    def off(self, event: str, listener: Callable[[Any], None]) -> None:
        self.emitter.off(event, listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Flush queued audit entries and wait for in-flight deliveries."""
        return self.dispatcher.flush(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Drain queued entries and release the transport."""
        atexit.unregister(self.shutdown)
        self.dispatcher.shutdown(timeout)
        if self._registered:
            clear_registered_logger(self.log)

    def get_stats(self) -> dict:
        """Dispatcher statistics plus the failure count."""
        stats = self.dispatcher.get_stats()
        stats["failures"] = self.failure_sink.failures
        return stats

    def __enter__(self) -> "AuditClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
