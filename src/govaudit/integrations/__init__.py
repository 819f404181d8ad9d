"""Framework integrations."""

from govaudit.integrations.fastapi import (
    LoggerContextMiddleware,
    extract_request_context,
    for_request,
)

__all__ = ["LoggerContextMiddleware", "extract_request_context", "for_request"]
