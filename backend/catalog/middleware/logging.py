"""
Movie Catalog Backend: Access Logging Middleware
===================================================

What:  One log line per request: method, path, status, duration, request id.
How:   Emitted on the "catalog.access" logger once the response is ready.
       Level follows the status class: 5xx ERROR, 4xx WARNING, else INFO.
When:  Inside RequestIDMiddleware, so the request id is already set.

Request bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from catalog.middleware.request_id import request_id_var

# Separate logger name so access lines can be routed or silenced on their own
logger = logging.getLogger("catalog.access")

# Probed every few seconds by the platform; not worth a line each.
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and duration for each request.

    Duration covers everything below this middleware: validation, the
    MongoDB round trip and serialization. A request that waits on a lazy
    store reconnect shows up here with the connection timeout added.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        # perf_counter: monotonic, unaffected by wall-clock adjustments
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        # 5xx → ERROR (store or server problem)
        # 4xx → WARNING (caller sent something invalid)
        # else → INFO
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # request.client is None under some ASGI test transports
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            # Structured fields for handlers that format records as JSON
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
