"""Unit tests for module-level logger access."""

from unittest.mock import MagicMock

import pytest

from govaudit.common.exceptions import ConfigurationError
from govaudit.context.store import default_store
from govaudit.logger.factory import (
    clear_logger_context,
    clear_registered_logger,
    get_logger,
    register_logger,
    set_logger_context,
)
from govaudit.logger.unified import UnifiedLogger


class TestRegistry:
    """Tests for register/get/clear."""

    def test_get_logger_without_client_raises(self):
        with pytest.raises(ConfigurationError):
            get_logger()

    def test_registered_logger_is_returned(self):
        logger = MagicMock(spec=UnifiedLogger)
        register_logger(logger)

        assert get_logger() is logger

    def test_clear_only_matching_logger(self):
        current = MagicMock(spec=UnifiedLogger)
        other = MagicMock(spec=UnifiedLogger)
        register_logger(current)

        clear_registered_logger(other)
        assert get_logger() is current

        clear_registered_logger(current)
        with pytest.raises(ConfigurationError):
            get_logger()


class TestContextHelpers:
    """Tests for set_logger_context/clear_logger_context."""

    def test_set_and_clear(self):
        set_logger_context(userId="u-1")
        set_logger_context(request_id="r-1")

        context = default_store.get_context()
        assert context.user_id == "u-1"
        assert context.request_id == "r-1"

        clear_logger_context()
        assert default_store.get_context().is_empty
