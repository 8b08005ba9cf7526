"""Per-request access log and correlation id.

An inbound X-Request-ID is honoured (truncated to 64 chars) so a gateway's
trace id survives into our logs; otherwise a ``req_`` id is minted. The id
lands on ``request.state.request_id`` for the response envelope and is echoed
in the response header.

    INFO [POST] /api/v1/offers/ofr_1/accept 200 23ms req_a1b2c3d4e5f6
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("sm.request")

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INBOUND_LEN = 64


def _correlation_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if inbound:
        return inbound[:_MAX_INBOUND_LEN]
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _correlation_id(request)
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        took_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        # 5xx is worth a look even when the handler already logged it
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s %d %.0fms %s",
            request.method,
            request.url.path,
            response.status_code,
            took_ms,
            request_id,
        )
        return response
