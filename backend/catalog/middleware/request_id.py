"""
Movie Catalog Backend: Request ID Middleware
===============================================

What:  Gives every request a short correlation id, echoed in X-Request-ID.
How:   Reuses a well-formed client-supplied X-Request-ID, otherwise generates
       one; stores it in a ContextVar so loggers and exception handlers can
       read it without access to the request object.
When:  Outermost application middleware (added last in create_app).
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests share a thread but each sees its own
# value. Reset after the response so nothing leaks into the next request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client ids are copied into logs and headers, so only plain tokens pass.
# Anything longer or containing spaces, quotes or newlines is replaced.
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    # 8 hex chars: enough to correlate one request's log lines, short to read
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns the request id and adds it to the response headers.

    Behavior:
        1. Use the client's X-Request-ID if it is a plain token
        2. Otherwise generate a new id
        3. Expose it through request_id_var and request.state
        4. Echo it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # The front end may send its own id to tie a UI action to a log line
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _CLIENT_ID_PATTERN.match(supplied) else new_request_id()

        # ContextVar for loggers; request.state survives past the reset below
        # and is what the catch-all 500 handler reads
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        # Exposed to browsers through CORS expose_headers in main.py
        response.headers["X-Request-ID"] = rid
        return response
