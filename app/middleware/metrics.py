"""Prometheus metrics middleware.

Every request increments ACTIVE_REQUESTS while in flight, then feeds
REQUEST_COUNT and REQUEST_DURATION.

The ``endpoint`` label is the matched route TEMPLATE
(``/v1/enrollments/{enrollment_id}``), not the raw path: raw paths carry
enrollment ids and certificate codes, and one time series per id would
swamp Prometheus.  Unmatched paths are bucketed as ``unmatched``.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED = "unmatched"


def endpoint_label(request: Request) -> str:
    """Template of the route the router resolved; call after ``call_next``."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Prometheus scrapes must not count themselves.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"  # unhandled exceptions become 500s

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            endpoint = endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                duration
            )

        return response
