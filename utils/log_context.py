"""
Request logging middleware and context management.

Provides:
- Automatic request ID generation for correlation
- Request/response logging with timing
- Context (request_id, ip_hash) bound through structlog contextvars so every
  log line emitted while serving a request carries it
"""

import time
import uuid

import structlog
from fastapi import FastAPI, Request

from shared.ip_utils import get_client_ip

from .logger import get_logger, hash_ip

log = get_logger("guest.request")


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"


def log_request_end(path: str, method: str, status_code: int, duration_ms: int) -> None:
    """Log the end of a request with timing and status."""
    if status_code >= 500:
        log_fn = log.error
    elif status_code >= 400:
        log_fn = log.warning
    else:
        log_fn = log.info

    log_fn(
        "request_completed",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )


def setup_logging_middleware(app: FastAPI) -> None:
    """
    Register logging middleware with the FastAPI app.

    Sets up request ID generation, context binding and request completion
    logging; the request ID is echoed back in the X-Request-ID header.
    """

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        start = time.time()
        request_id = generate_request_id()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            ip_hash=hash_ip(get_client_ip(request)),
        )

        response = await call_next(request)

        duration_ms = int((time.time() - start) * 1000)
        log_request_end(request.url.path, request.method, response.status_code, duration_ms)
        response.headers["X-Request-ID"] = request_id
        return response
