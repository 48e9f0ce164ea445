import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000


class TimingMiddleware(BaseHTTPMiddleware):
    """Adds X-Latency-Ms (and echoes X-Request-ID) on every response."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request.state.start_time = start    # read by the error handlers for latency_ms
        response = await call_next(request)

        latency_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Latency-Ms"] = str(latency_ms)
        request_id = request.headers.get("X-Request-ID")
        if request_id:
            response.headers["X-Request-ID"] = request_id
        if latency_ms >= SLOW_REQUEST_MS:
            logger.warning("slow request %s %s took %d ms", request.method, request.url.path, latency_ms)
        return response
