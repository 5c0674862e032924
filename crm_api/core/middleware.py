"""HTTP middleware for request correlation and access logging.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars for the whole request lifecycle
- Echoes request_id and total duration in the response headers
- Emits one ``http.request`` log line per request
- Clears the correlation context afterwards so nothing leaks across requests

Usage:
    app.middleware("http")(request_context_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from crm_api.core.config import settings
from crm_api.core.logging import clear_request_context, set_request_id

logger = logging.getLogger(__name__)


async def request_context_middleware(request: Request, call_next) -> Response:
    """Assign a correlation id to the request and time it.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_context()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
