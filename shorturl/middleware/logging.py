"""
Request logging middleware for FastAPI using Loguru.

Every request gets an ID, returned in the X-Request-ID header and attached
to each log record emitted while the request is handled. One line per
request records method, path, status and duration.
"""

import time
import uuid

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per HTTP request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        start_time = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            response = await call_next(request)

        process_time_ms = (time.perf_counter() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        client_ip = request.client.host if request.client else "unknown"
        if "X-Forwarded-For" in request.headers:
            forwarded_ips = request.headers["X-Forwarded-For"].split(",")
            if forwarded_ips:
                client_ip = forwarded_ips[0].strip()

        logger.bind(
            request_id=request_id,
            client_ip=client_ip,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time_ms, 2),
        ).info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{process_time_ms:.2f}ms"
        )
        return response
