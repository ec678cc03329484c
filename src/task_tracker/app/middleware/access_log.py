import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tracker.access")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One start/end pair per request, tagged with a request id echoed back as X-Request-ID."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        base = {"category": "http", "request_id": request_id, "method": request.method, "path": request.url.path}
        start = time.perf_counter()

        logger.debug("request.start", extra={**base, "event": "request.start", "query": str(request.url.query)})

        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={**base, "event": "request.error", "duration_ms": _elapsed_ms(start)},
            )
            raise

        response.headers["X-Request-ID"] = request_id
        logger.log(
            _level_for(response.status_code),
            "request.end",
            extra={**base, "event": "request.end", "status_code": response.status_code, "duration_ms": _elapsed_ms(start)},
        )
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
