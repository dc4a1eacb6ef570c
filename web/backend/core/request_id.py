"""
Request ID middleware for FastAPI backend.

Assigns a correlation ID to each request and includes it in all log entries
for that request.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from utils.log_context import get_request_id, request_id_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a request ID to each request.

    The request ID is:
    - Taken from the incoming X-Request-ID header when the client sends one
    - Stored in context for access by log formatters
    - Returned in the X-Request-ID response header
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        token = request_id_context.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = ["REQUEST_ID_HEADER", "RequestIDMiddleware", "get_request_id"]
