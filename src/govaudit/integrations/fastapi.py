"""FastAPI/Starlette middleware opening a logger context per request.

    app = FastAPI()
    app.add_middleware(LoggerContextMiddleware)

Every entry logged while the request is handled carries its correlation id,
request id, client IP and (via the bearer token) user and session ids. The
correlation id is echoed back in the x-correlation-id response header.

for_request() binds the same fields, plus method, path, referer and user
agent in the payload, to a single ScopedLogger without opening a scope.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from govaudit.context.correlation import generate_server_correlation_id
from govaudit.context.jwt_context import extract_token_context
from govaudit.context.store import ContextStore, default_store
from govaudit.logger.factory import get_logger
from govaudit.logger.unified import ScopedLogger, UnifiedLogger

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "x-correlation-id"
REQUEST_ID_HEADER = "x-request-id"


def _client_ip(scope: Scope, headers: Headers) -> Optional[str]:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else None


def _bearer_token(headers: Headers) -> Optional[str]:
    authorization = headers.get("authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def extract_request_context(scope: Scope) -> Tuple[Dict[str, Optional[str]], Dict[str, Any]]:
    """Read logging context from an HTTP request scope.

    Returns:
        (identity, details): identity holds the context fields (correlation
        and request ids, client IP, bearer token and the user and session ids
        it carries); details holds method, path, referer, user agent and
        request size for the payload.
    """
    headers = Headers(scope=scope)
    token = _bearer_token(headers)
    claims = extract_token_context(token)

    identity = {
        "correlation_id": headers.get(CORRELATION_HEADER),
        "request_id": headers.get(REQUEST_ID_HEADER),
        "ip_address": _client_ip(scope, headers),
        "token": token,
        "user_id": claims.get("user_id"),
        "session_id": claims.get("session_id"),
    }

    details: Dict[str, Any] = {
        "method": scope.get("method"),
        "path": scope.get("path"),
        "referer": headers.get("referer"),
        "userAgent": headers.get("user-agent"),
    }
    content_length = headers.get("content-length")
    if content_length and content_length.isdigit():
        details["requestSize"] = int(content_length)

    return identity, {k: v for k, v in details.items() if v is not None}


def for_request(
    request: Union[HTTPConnection, Scope],
    log: Optional[UnifiedLogger] = None,
) -> ScopedLogger:
    """Logger bound to one request's context.

    For call sites outside LoggerContextMiddleware:

        @app.post("/orders")
        async def create_order(request: Request):
            for_request(request).info("Order received")

    Args:
        request: A Starlette request, or its raw ASGI scope.
        log: Logger to scope. Uses the registered logger if None.
    """
    scope = request.scope if isinstance(request, HTTPConnection) else request
    identity, details = extract_request_context(scope)

    scoped = (log or get_logger()).with_context(**identity)
    for key, value in details.items():
        scoped = scoped.add_context(key, value)
    return scoped


class LoggerContextMiddleware:
    """ASGI middleware binding request identifiers into the ContextStore."""

    def __init__(self, app: ASGIApp, store: ContextStore = default_store) -> None:
        self.app = app
        self.store = store

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        partial, _ = extract_request_context(scope)
        correlation_id = partial["correlation_id"] or generate_server_correlation_id()
        partial["correlation_id"] = correlation_id

        async def send_with_correlation(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers[CORRELATION_HEADER] = correlation_id
            await send(message)

        with self.store.with_context(**partial):
            await self.app(scope, receive, send_with_correlation)
