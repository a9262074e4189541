"""Request logging middleware.

Every request gets a short request ID in ``request.state.request_id`` (handlers
copy it into ApiResponse) and one log line on the ``gm.request`` logger:

    INFO [POST] /api/v1/items/42/buy → 201 (31ms) req_a1b2c3d4e5f6

5xx responses are logged at WARNING so long-running import failures stand out.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("gm.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception(
                "[%s] %s raised after %.0fms %s",
                request.method,
                request.url.path,
                (time.perf_counter() - start) * 1000,
                request_id,
            )
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
