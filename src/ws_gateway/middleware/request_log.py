"""Request logging middleware.

Every request gets a request id: the caller's X-Request-ID when it is sane,
otherwise a fresh one. It is stored on request.state (routers copy it into
ApiResponse), echoed back in the X-Request-ID response header, and logged:

    INFO [POST] /api/v1/bets/123/action → 200 (23ms) req_a1b2c3d4e5f6

Server errors (5xx) are logged at WARNING so failed settlements stand out.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("ws.request")

REQUEST_ID_HEADER = "X-Request-ID"
_INCOMING_ID_RE = re.compile(r"[A-Za-z0-9_.-]{1,64}")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _INCOMING_ID_RE.fullmatch(incoming):
        return incoming
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = _request_id(request)

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response
