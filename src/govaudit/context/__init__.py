"""Context - ambient request/session identifiers per logical call chain."""

from govaudit.context.store import (
    EMPTY_CONTEXT,
    ContextSnapshot,
    ContextStore,
    default_store,
)
from govaudit.context.jwt_context import extract_token_context
from govaudit.context.correlation import (
    generate_correlation_id,
    generate_server_correlation_id,
)

__all__ = [
    "ContextSnapshot",
    "ContextStore",
    "EMPTY_CONTEXT",
    "default_store",
    "extract_token_context",
    "generate_correlation_id",
    "generate_server_correlation_id",
]
