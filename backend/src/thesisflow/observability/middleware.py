"""FastAPI middleware for observability.

Binds a correlation id to every HTTP request, logs its start and end, and
records its latency.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds
from .request_id import REQUEST_ID_HEADER, request_scope, resolve_request_id

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Runs each request inside its own request-id scope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        with request_scope(request_id):
            start_time = time.time()
            logger.info(
                f"{request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": request.client.host if request.client else None,
                }
            )

            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"Request failed: {str(e)}",
                    extra={
                        "error_type": type(e).__name__,
                        "duration_ms": round((time.time() - start_time) * 1000, 2),
                    },
                    exc_info=True
                )
                raise

            duration = time.time() - start_time
            http_request_duration_seconds.labels(
                method=request.method,
                status_code=str(response.status_code),
            ).observe(duration)
            logger.info(
                f"Request completed: {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round(duration * 1000, 2),
                }
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
