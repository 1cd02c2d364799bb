import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        label = f"[{request_id}] {request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{label} failed after {self._elapsed_ms(started)}ms")
            raise

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(level, f"{label} -> {response.status_code} in {self._elapsed_ms(started)}ms")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
