"""
FastAPI middleware for request logging.

Tags every request with a request ID (taken from X-Request-ID when the
caller sends one) and logs method, path, caller, status and elapsed time.
Server errors are logged at WARNING so store outages stand out.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (available across async calls)
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-ID"


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging requests and tracking timing.

    Features:
    - Reuses the caller's X-Request-ID or generates a short one
    - Records the calling user (X-User-ID) alongside each request
    - Adds X-Request-ID and X-Response-Time headers to the response
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        caller = request.headers.get(USER_ID_HEADER) or "anonymous"
        token = request_id_ctx.set(req_id)

        logger.info(
            f"[{req_id}] {request.method} {request.url.path} by {caller}",
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "user_id": caller,
            },
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                f"[{req_id}] Request failed after {elapsed:.2f}s: {e}",
                extra={"request_id": req_id, "elapsed_ms": elapsed * 1000},
                exc_info=True,
            )
            raise
        finally:
            request_id_ctx.reset(token)

        elapsed = time.perf_counter() - start_time
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"[{req_id}] {response.status_code} in {elapsed:.2f}s",
            extra={
                "request_id": req_id,
                "status_code": response.status_code,
                "elapsed_ms": elapsed * 1000,
            },
        )

        response.headers[REQUEST_ID_HEADER] = req_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response
