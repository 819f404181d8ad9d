"""Unit tests for AuditClient wiring."""

import json
import os
import shutil
import tempfile
from unittest.mock import MagicMock

import pytest

from govaudit.client import AuditClient
from govaudit.common.config import Config
from govaudit.common.exceptions import ConfigurationError
from govaudit.dispatch.failure_sink import DeliveryStatus
from govaudit.dispatch.sinks import LocalObserverSink, NetworkSink
from govaudit.dispatch.transport import HttpTransport
from govaudit.logger.factory import get_logger


@pytest.fixture
def temp_config_dir():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def observer_config():
    return Config(emit_events=True, audit_batch_size=2, audit_batch_interval_ms=50)


class TestConstruction:
    """Tests for sink selection and registration."""

    def test_observer_mode(self, observer_config):
        with AuditClient(observer_config) as client:
            assert isinstance(client.sink, LocalObserverSink)
            assert get_logger() is client.log

    def test_network_mode_builds_http_transport(self):
        config = Config(controller_url="https://controller.test", client_id="app")

        with AuditClient(config) as client:
            assert isinstance(client.sink, NetworkSink)
            assert isinstance(client.sink.transport, HttpTransport)

    def test_custom_transport(self):
        transport = MagicMock()
        config = Config(controller_url="https://controller.test")

        with AuditClient(config, transport=transport) as client:
            client.log.info("hello").result(timeout=2)

        transport.send_log.assert_called_once()
        transport.close.assert_called_once()

    def test_unregistered_client(self, observer_config):
        with AuditClient(observer_config, register=False):
            with pytest.raises(ConfigurationError):
                get_logger()

    def test_bad_sensitive_fields_document_fails_fast(self, temp_config_dir):
        path = os.path.join(temp_config_dir, "fields.json")
        with open(path, "w") as f:
            json.dump({"version": "1"}, f)

        with pytest.raises(ConfigurationError):
            AuditClient(Config(emit_events=True, sensitive_fields_config=path))

    def test_custom_sensitive_fields_are_applied(self, temp_config_dir):
        path = os.path.join(temp_config_dir, "fields.json")
        with open(path, "w") as f:
            json.dump({"categories": {"custom": ["apiToken", "badgeNumber"]}}, f)

        with AuditClient(Config(emit_events=True, sensitive_fields_config=path)) as client:
            assert client.registry.is_sensitive("badge_number")


class TestLifecycle:
    """Tests for events, flush and shutdown."""

    def test_on_off(self, observer_config):
        with AuditClient(observer_config) as client:
            received = []
            client.on("log", received.append)
            client.log.info("one").result(timeout=2)
            client.off("log", received.append)
            client.log.info("two").result(timeout=2)

        assert [r["message"] for r in received] == ["one"]

    def test_shutdown_flushes_and_unregisters(self, observer_config):
        client = AuditClient(observer_config)
        batches = []
        client.on("log:batch", batches.append)
        handle = client.log.audit("a", "b")

        client.shutdown()

        assert handle.result(timeout=0) == DeliveryStatus.DELIVERED
        assert len(batches) == 1
        with pytest.raises(ConfigurationError):
            get_logger()
        assert client.log.info("late").result(timeout=0) == DeliveryStatus.DISCARDED

    def test_stats(self, observer_config):
        with AuditClient(observer_config) as client:
            client.log.audit("a", "b")
            client.log.audit("c", "d").result(timeout=2)
            client.flush(timeout=2)
            stats = client.get_stats()

        assert stats["entries_delivered"] == 2
        assert stats["failures"] == 0
