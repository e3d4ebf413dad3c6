"""
Health check endpoint.

GET /health — probes every backing service the guest flow touches.

    mongodb   challenges, documents and audit entries live here → "unhealthy" (503)
    storage   result files; grants cannot be issued without it  → "unhealthy" (503)
    redis     only the request limiter uses it                  → "degraded" (200)
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _probe(name: str, check: Callable[[], Awaitable[object]]) -> str:
    try:
        ok = await check()
    except Exception as e:
        log.warning("health_check_failed", service=name, error=str(e))
        return "error"
    return "ok" if ok is not False else "error"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    state = request.app.state
    checks = {
        "mongodb": await _probe("mongodb", lambda: state.db.client.admin.command("ping")),
        "storage": await _probe("storage", state.file_store.ping),
    }
    if state.redis is None:
        checks["redis"] = "not_configured"
    else:
        checks["redis"] = await _probe("redis", state.redis.ping)

    if checks["mongodb"] != "ok" or checks["storage"] != "ok":
        overall, status_code = "unhealthy", 503
    elif checks["redis"] != "ok":
        overall, status_code = "degraded", 200
    else:
        overall, status_code = "healthy", 200

    return JSONResponse(
        status_code=status_code,
        content=HealthResponse(status=overall, checks=checks).model_dump(),
    )
