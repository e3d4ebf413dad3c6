"""
Guest document-access endpoints.

POST /api/auth/guest/challenge        — send a passcode for a magic-link token
POST /api/auth/guest/verify           — exchange token + passcode for a download URL
POST /api/auth/guest/verify-fallback  — exchange token + date of birth for a download URL
GET  /api/auth/guest/view-file        — stream the PDF named by a download grant

Service failures are mapped to AppError subclasses here. An unknown document
reads the same as a bad token, and a missing challenge the same as a consumed
one.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from config import AppSettings
from dependencies import (
    get_file_store,
    get_grant_issuer,
    get_guest_service,
    get_settings,
    guest_rate_limit,
)
from errors import (
    AppError,
    AuthenticationError,
    ForbiddenError,
    GoneError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from infrastructure.storage.protocol import FileStore, StorageUnavailable
from schemas.dto.requests.guest import (
    ChallengeRequest,
    VerifyFallbackRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.common import ErrorResponse
from schemas.dto.responses.guest import AccessResponse, ChallengeResponse
from services.download_grant import InvalidGrant, SignedFileGrantIssuer
from services.guest_verification import (
    ChallengeIssued,
    FailureKind,
    GuestAccessFailure,
    GuestVerificationService,
    VerificationResult,
)
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(
    prefix="/api/auth/guest",
    tags=["guest-access"],
    dependencies=[Depends(guest_rate_limit)],
    responses={
        status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 410, 429, 503)
    },
)

T = TypeVar("T")

_INVALID_LINK = "Invalid or expired link"
_NO_SESSION = "Verification session not found. Please request a new code."

_FAILURE_ERRORS: dict[FailureKind, AppError] = {
    FailureKind.INVALID_TOKEN: AuthenticationError(_INVALID_LINK),
    FailureKind.NOT_FOUND: NotFoundError(_INVALID_LINK),
    FailureKind.NO_CHALLENGE: AuthenticationError(_NO_SESSION),
    FailureKind.NO_SESSION: AuthenticationError(_NO_SESSION),
    FailureKind.DOCUMENT_GONE: GoneError(
        "This document is no longer available under the retention policy"
    ),
    FailureKind.CHALLENGE_EXPIRED: ValidationError(
        "The code has expired. Please request a new one."
    ),
    FailureKind.TOO_MANY_ATTEMPTS: ForbiddenError(
        "Too many failed attempts. Please request a new code."
    ),
    FailureKind.INVALID_CODE: ForbiddenError("Invalid verification code"),
    FailureKind.INVALID_DOB: ForbiddenError("Incorrect date of birth"),
    FailureKind.FALLBACK_UNAVAILABLE: ValidationError(
        "Date-of-birth verification is not available for this document"
    ),
    FailureKind.GRANT_ISSUANCE_FAILED: ValidationError(
        "The document could not be retrieved. Please try again."
    ),
}


def error_for(failure: GuestAccessFailure) -> AppError:
    """Map a service failure to the AppError raised at the HTTP boundary."""
    template = _FAILURE_ERRORS[failure.kind]
    return type(template)(template.message)


def _require(value: Optional[str], field: str) -> str:
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    return value


async def _bounded(call: Awaitable[T], settings: AppSettings) -> T:
    try:
        return await asyncio.wait_for(call, timeout=settings.guest.request_timeout_seconds)
    except asyncio.TimeoutError:
        log.error("guest_request_timeout")
        raise ServiceUnavailableError("The request timed out. Please try again.")


def _access_response(result: VerificationResult) -> AccessResponse:
    if isinstance(result, GuestAccessFailure):
        raise error_for(result)
    return AccessResponse(download_url=result.download_url)


@router.post("/challenge", response_model=ChallengeResponse)
async def challenge(
    body: ChallengeRequest,
    service: GuestVerificationService = Depends(get_guest_service),
    settings: AppSettings = Depends(get_settings),
) -> ChallengeResponse:
    token = _require(body.token, "token")
    result = await _bounded(service.challenge(token), settings)
    if not isinstance(result, ChallengeIssued):
        raise error_for(result)
    return ChallengeResponse(
        message=f"OTP sent to {result.masked_phone}",
        delivery_status=result.delivery_status.value,
    )


@router.post("/verify", response_model=AccessResponse)
async def verify(
    body: VerifyOtpRequest,
    service: GuestVerificationService = Depends(get_guest_service),
    settings: AppSettings = Depends(get_settings),
) -> AccessResponse:
    token = _require(body.token, "token")
    code = _require(body.code, "code")
    result = await _bounded(service.verify_otp(token, code), settings)
    return _access_response(result)


@router.post("/verify-fallback", response_model=AccessResponse)
async def verify_fallback(
    body: VerifyFallbackRequest,
    service: GuestVerificationService = Depends(get_guest_service),
    settings: AppSettings = Depends(get_settings),
) -> AccessResponse:
    token = _require(body.token, "token")
    dob = _require(body.dob, "dob")
    result = await _bounded(service.verify_dob_fallback(token, dob), settings)
    return _access_response(result)


@router.get("/view-file")
async def view_file(
    token: Optional[str] = Query(default=None),
    issuer: SignedFileGrantIssuer = Depends(get_grant_issuer),
    store: FileStore = Depends(get_file_store),
) -> StreamingResponse:
    grant = _require(token, "token")
    try:
        file_key = issuer.redeem(grant)
    except InvalidGrant as e:
        log.warning("download_grant_rejected", reason=str(e))
        raise AuthenticationError("Link expired or invalid")

    try:
        available = await store.exists(file_key)
    except StorageUnavailable:
        available = False
    if not available:
        raise ServiceUnavailableError("The document is temporarily unavailable")

    return StreamingResponse(
        store.iter_chunks(file_key),
        media_type="application/pdf",
        headers={"Content-Disposition": "inline", "Cache-Control": "no-store"},
    )
