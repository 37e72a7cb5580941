"""Request context middleware for FastAPI.

Attaches to every request:
- A request ID (taken from ``X-Request-ID`` or generated)
- Client IP address
- User agent

Services read these through ``agencyflow.api.deps.get_request_context`` and
copy them onto each activity log entry. The request ID is echoed back in the
response headers.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Paths that should not be logged (health checks, docs)
EXCLUDED_PATHS = {
    "/health",
    "/health/live",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    # Check X-Forwarded-For header (set by reverse proxies)
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming[:64] if incoming else uuid.uuid4().hex[:16]

        request.state.request_id = request_id
        request.state.client_ip = get_client_ip(request)
        request.state.user_agent = request.headers.get("user-agent", "")

        start_time = time.time()
        response = await call_next(request)
        duration_ms = int((time.time() - start_time) * 1000)

        response.headers[REQUEST_ID_HEADER] = request_id
        if request.url.path not in EXCLUDED_PATHS:
            logger.info(
                "%s %s -> %s in %sms [%s]",
                request.method, request.url.path, response.status_code, duration_ms, request_id,
            )
        return response
