"""
Request DTOs for guest document-access endpoints.

ChallengeRequest       — POST /api/auth/guest/challenge
VerifyOtpRequest       — POST /api/auth/guest/verify
VerifyFallbackRequest  — POST /api/auth/guest/verify-fallback

Fields are optional at the schema level; route handlers reject missing or
blank values with a 400 so every guest error shares one response shape.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ChallengeRequest(BaseModel):
    """Request body for POST /api/auth/guest/challenge."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    token: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    """Request body for POST /api/auth/guest/verify.

    ``code`` is the 6-digit passcode delivered by SMS.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    token: Optional[str] = None
    code: Optional[str] = None


class VerifyFallbackRequest(BaseModel):
    """Request body for POST /api/auth/guest/verify-fallback.

    ``dob`` is the patient's date of birth as an ISO 8601 date or date-time.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    token: Optional[str] = None
    dob: Optional[str] = None
