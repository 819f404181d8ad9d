"""Context Store - ambient request/session fields scoped to a call chain.

Bindings live in a ContextVar, so every asyncio task and every thread sees
its own values: two in-flight requests calling get_context() with no
explicit handle never observe each other's fields.
"""

import contextvars
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

T = TypeVar("T")

WIRE_CONTEXT_FIELDS = ("user_id", "correlation_id", "request_id", "session_id")


class ContextSnapshot(BaseModel):
    """Immutable copy of the ambient context at entry-construction time."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    user_id: Optional[str] = None
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None
    session_id: Optional[str] = None
    ip_address: Optional[str] = None
    token: Optional[str] = Field(default=None, exclude=True, repr=False)

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)

    def merge(self, **partial: Any) -> "ContextSnapshot":
        """Return a new snapshot with partial values laid over this one.

        Keys may be snake_case or camelCase. Values are stored as strings;
        None values are ignored so a partial update never clears a field.
        Unknown keys are ignored and reported at debug level.
        """
        unknown = [k for k in partial if k not in _KNOWN_KEYS]
        if unknown:
            logger.debug(f"Ignoring unknown context keys: {', '.join(sorted(unknown))}")

        values = {name: getattr(self, name) for name in type(self).model_fields}
        updates = ContextSnapshot.model_validate(
            {k: str(v) for k, v in partial.items() if v is not None}
        )
        for name in updates.model_fields_set:
            values[name] = getattr(updates, name)
        return ContextSnapshot(**values)

    def to_wire(self) -> Dict[str, str]:
        """Context fields sent with each record (never the token)."""
        return self.model_dump(by_alias=True, exclude_none=True, include=set(WIRE_CONTEXT_FIELDS))


EMPTY_CONTEXT = ContextSnapshot()

_KNOWN_KEYS = frozenset(
    key for name in ContextSnapshot.model_fields for key in (name, to_camel(name))
)

_logger_context: contextvars.ContextVar[Optional[ContextSnapshot]] = contextvars.ContextVar(
    "govaudit_logger_context", default=None
)


class ContextStore:
    """Per-call-chain context binding.

    When no scope is active get_context() returns an empty snapshot;
    set_context() then binds values in the current execution context, which
    is how background jobs outside any request populate their own context.
    """

    def __init__(self, var: contextvars.ContextVar = _logger_context):
        self._var = var

    def get_context(self) -> ContextSnapshot:
        """Get the active snapshot, or an empty one."""
        return self._var.get() or EMPTY_CONTEXT

    def set_context(self, **partial: Any) -> ContextSnapshot:
        """Merge partial values into the active scope."""
        snapshot = self.get_context().merge(**partial)
        self._var.set(snapshot)
        return snapshot

    def clear_context(self) -> None:
        """Reset the active scope to an empty snapshot."""
        self._var.set(None)

    @contextmanager
    def with_context(self, **partial: Any) -> Generator[ContextSnapshot, None, None]:
        """Open a nested scope; the enclosing values are restored on exit.

        Example:
            with store.with_context(user_id="u-1", correlation_id="req-9"):
                get_logger().info("handled")
        """
        snapshot = self.get_context().merge(**partial)
        token = self._var.set(snapshot)
        try:
            yield snapshot
        finally:
            self._var.reset(token)

    def run(self, partial: Dict[str, Any], fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run fn in a copied context with partial applied.

        Nothing fn sets on the store leaks back into the caller's context.
        """
        def _scoped() -> T:
            self.set_context(**partial)
            return fn(*args, **kwargs)

        return contextvars.copy_context().run(_scoped)


# Shared store used by the module-level helpers
default_store = ContextStore()
