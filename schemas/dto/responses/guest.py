"""
Response DTOs for guest document-access endpoints.

ChallengeResponse — POST /api/auth/guest/challenge  (200)
AccessResponse    — POST /api/auth/guest/verify and /verify-fallback  (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ChallengeResponse(BaseModel):
    """Response body for POST /api/auth/guest/challenge (200).

    ``delivery_status`` is ``"sent"`` or ``"retry_suggested"`` when the SMS
    gateway did not accept the message; the code is still valid either way.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    delivery_status: str


class AccessResponse(BaseModel):
    """Response body for a successful verification (200)."""

    model_config = ConfigDict(populate_by_name=True)

    download_url: str
    status: str = "success"
