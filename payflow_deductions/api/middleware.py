"""FastAPI middleware for request tracing and metrics"""

import logging
import uuid
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from payflow_deductions.infrastructure.observability.metrics import request_duration_histogram

logger = logging.getLogger(__name__)


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    # Template keeps draft ids out of metric labels
    return getattr(route, "path", request.url.path)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a request ID and, for draft routes, the draft ID.

    Both are echoed as response headers and logged once per request, so a
    wizard session can be followed across search, edit and submit calls.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        # Path params are only known once the router has matched
        draft_id = request.scope.get("path_params", {}).get("draft_id")
        if draft_id:
            response.headers["X-Draft-ID"] = draft_id
            logger.info(
                "Draft request handled",
                extra={
                    "request_id": request_id,
                    "draft_id": draft_id,
                    "method": request.method,
                    "endpoint": _route_template(request),
                    "status": response.status_code,
                },
            )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP request metrics"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        request_duration_histogram.labels(
            method=request.method,
            endpoint=_route_template(request),
            status=response.status_code,
        ).observe(time.time() - start_time)

        return response
