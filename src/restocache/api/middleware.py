"""Request ID middleware.

Propagates the request ID to the logging context and echoes it back in
the response headers.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from restocache.observability.logging import request_id_var


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Extract or generate ``x-request-id`` for every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-amzn-requestid")  # AWS ALB
            or str(uuid.uuid4())
        )
        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            request_id_var.reset(token)
