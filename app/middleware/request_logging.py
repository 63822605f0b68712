from fastapi import Request
import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("app")

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency of every request"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start_time) * 1000.0
            logger.exception(f"{method} {path} raised after {elapsed_ms:.1f}ms")
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000.0
        log = logger.warning if response.status_code >= 500 else logger.info
        log(f"{method} {path} -> {response.status_code} in {elapsed_ms:.1f}ms")
        return response
