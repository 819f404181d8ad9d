"""Unit tests for ContextStore.

Tests scoping, merging and isolation of ambient context across threads
and asyncio tasks.
"""

import asyncio
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from govaudit.context.store import EMPTY_CONTEXT, ContextSnapshot, ContextStore


@pytest.fixture
def store():
    """Store on the shared context variable (reset by conftest)."""
    return ContextStore()


class TestContextSnapshot:
    """Tests for ContextSnapshot."""

    def test_empty_snapshot(self):
        assert EMPTY_CONTEXT.is_empty
        assert EMPTY_CONTEXT.to_wire() == {}

    def test_merge_accepts_snake_and_camel_keys(self):
        """Partial updates may use either naming style."""
        snapshot = EMPTY_CONTEXT.merge(user_id="u-1").merge(correlationId="c-1")

        assert snapshot.user_id == "u-1"
        assert snapshot.correlation_id == "c-1"

    def test_merge_ignores_none(self):
        """None never clears an existing value."""
        snapshot = EMPTY_CONTEXT.merge(user_id="u-1").merge(user_id=None, request_id="r-1")

        assert snapshot.user_id == "u-1"
        assert snapshot.request_id == "r-1"

    def test_merge_coerces_to_string(self):
        """Non-string ids are stored as strings."""
        ident = uuid.uuid4()

        snapshot = EMPTY_CONTEXT.merge(user_id=ident, request_id=7)

        assert snapshot.user_id == str(ident)
        assert snapshot.request_id == "7"

    def test_merge_reports_unknown_keys(self, caplog):
        """Misspelled keys are dropped and logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="govaudit.context.store"):
            snapshot = EMPTY_CONTEXT.merge(userID="A", request_id="r-1")

        assert snapshot.user_id is None
        assert snapshot.request_id == "r-1"
        assert "userID" in caplog.text

    def test_merge_known_keys_are_not_reported(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="govaudit.context.store"):
            EMPTY_CONTEXT.merge(userId="u-1", ip_address="10.0.0.1")

        assert "unknown context keys" not in caplog.text

    def test_wire_form_excludes_token_and_ip(self):
        """Only the four wire fields are serialized, in camelCase."""
        snapshot = ContextSnapshot(
            user_id="u", correlation_id="c", request_id="r", session_id="s",
            ip_address="10.0.0.1", token="jwt",
        )

        assert snapshot.to_wire() == {
            "userId": "u",
            "correlationId": "c",
            "requestId": "r",
            "sessionId": "s",
        }
        assert "jwt" not in snapshot.model_dump_json()
        assert "jwt" not in repr(snapshot)

    def test_snapshot_is_frozen(self):
        snapshot = ContextSnapshot(user_id="u")
        with pytest.raises(ValidationError):
            snapshot.user_id = "other"


class TestContextStore:
    """Tests for scope handling."""

    def test_get_context_without_scope_is_empty(self, store):
        assert store.get_context() == EMPTY_CONTEXT

    def test_set_context_merges(self, store):
        store.set_context(user_id="u-1")
        store.set_context(session_id="s-1")

        context = store.get_context()
        assert context.user_id == "u-1"
        assert context.session_id == "s-1"

    def test_clear_context(self, store):
        store.set_context(user_id="u-1")
        store.clear_context()

        assert store.get_context().is_empty

    def test_with_context_restores_outer_scope(self, store):
        """Nested scopes merge over and then restore the enclosing values."""
        store.set_context(user_id="outer", request_id="r-1")

        with store.with_context(user_id="inner") as inner:
            assert inner.user_id == "inner"
            assert store.get_context().request_id == "r-1"

        assert store.get_context().user_id == "outer"

    def test_with_context_restores_on_exception(self, store):
        with pytest.raises(RuntimeError):
            with store.with_context(user_id="inner"):
                raise RuntimeError("handler failed")

        assert store.get_context().is_empty

    def test_run_does_not_leak(self, store):
        """Values set inside run() stay inside."""
        def handler():
            store.set_context(session_id="s-9")
            return store.get_context()

        seen = store.run({"user_id": "u-9"}, handler)

        assert seen.user_id == "u-9"
        assert seen.session_id == "s-9"
        assert store.get_context().is_empty

    def test_snapshot_is_unaffected_by_later_changes(self, store):
        store.set_context(user_id="before")
        snapshot = store.get_context()

        store.set_context(user_id="after")

        assert snapshot.user_id == "before"


class TestIsolation:
    """Concurrent call chains never see each other's context."""

    def test_threads_are_isolated(self, store):
        barrier = threading.Barrier(2)

        def chain(user_id):
            store.set_context(user_id=user_id)
            barrier.wait(timeout=5)
            return store.get_context().user_id

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(chain, ["A", "B"]))

        assert results == ["A", "B"]
        assert store.get_context().is_empty

    def test_asyncio_tasks_are_isolated(self, store):
        async def chain(user_id):
            store.set_context(user_id=user_id)
            await asyncio.sleep(0.01)
            return store.get_context().user_id

        async def main():
            return await asyncio.gather(chain("A"), chain("B"))

        assert asyncio.run(main()) == ["A", "B"]
