"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. The objects themselves are built once in
create_app() and stored on app.state.
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from errors import RateLimitError
from infrastructure.rate_limiter import GuestRateLimiter
from infrastructure.storage.protocol import FileStore
from services.download_grant import SignedFileGrantIssuer
from services.guest_verification import GuestVerificationService
from shared.ip_utils import rate_limit_key


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_guest_service(request: Request) -> GuestVerificationService:
    return request.app.state.guest_service


def get_grant_issuer(request: Request) -> SignedFileGrantIssuer:
    return request.app.state.grant_issuer


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


async def guest_rate_limit(request: Request) -> None:
    """Reject the request with 429 once the client's per-minute allowance is spent."""
    limiter: GuestRateLimiter = request.app.state.rate_limiter
    if not await limiter.hit(rate_limit_key(request, "guest")):
        raise RateLimitError("Too many requests. Please try again in a minute.")
