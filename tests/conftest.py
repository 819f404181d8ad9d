"""Shared fixtures for govaudit tests."""

import pytest

from govaudit.common.config import reset_config
from govaudit.context.store import default_store
from govaudit.logger.factory import clear_registered_logger


@pytest.fixture(autouse=True)
def isolated_state():
    """Start every test with empty context, no registered logger and fresh config."""
    default_store.clear_context()
    clear_registered_logger()
    reset_config()
    yield
    default_store.clear_context()
    clear_registered_logger()
    reset_config()
