"""Request ID propagation and per-request completion logging.

Each request gets an ID, taken from the caller's ``X-Request-ID`` header
when it looks sane (the gateway or payment provider may already have
assigned one) or generated otherwise.  The ID lives in a ContextVar, so
every log line emitted while handling the request carries it without
being passed around; contextvars are per-task, which is what concurrent
async requests on one thread need.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Client-supplied IDs end up in log lines; keep them short and printable.
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _request_id_from(request: Request) -> str:
    supplied = request.headers.get("x-request-id")
    if supplied and _VALID_REQUEST_ID.match(supplied):
        return supplied
    return str(uuid.uuid4())


def _install_record_factory() -> None:
    """Stamp the current request ID onto every LogRecord.

    A record factory rather than a root-logger filter: logger filters
    do not see records propagated up from child loggers.
    """
    base = logging.getLogRecordFactory()
    if getattr(base, "_stamps_request_id", False):
        return

    def factory(*args, **kwargs) -> logging.LogRecord:
        record = base(*args, **kwargs)
        record.request_id = request_id_var.get()
        return record

    factory._stamps_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)


_install_record_factory()


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _request_id_from(request)
        token = request_id_var.set(req_id)
        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
