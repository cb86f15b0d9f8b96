"""Request logging middleware.

Logs method, path, status and latency for every request under a short
request id. The id comes from the X-Request-ID header when the caller sends
one, is stored on request.state for ApiResponse, and is echoed back.

Log format:
    INFO [POST] /api/v1/transactions/purchase → 200 (12ms) req_a1b2c3d4e5f6
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("cl.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
