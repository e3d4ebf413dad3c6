"""
One-time passcode challenge document model.

Maps to the `otp-challenges` MongoDB collection.

token_signature is the signature segment of the guest capability token, so a
challenge can be found without persisting the raw token. code_hash stores the
argon2 hash of the passcode; the plain code is never stored.
attempts counts verification tries across the OTP and date-of-birth paths.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, UtcDatetime


class OtpChallengeDoc(MongoBaseModel):
    """Document model for the `otp-challenges` collection."""

    token_signature: str
    code_hash: str
    expires_at: UtcDatetime
    attempts: int = Field(default=0, ge=0)
    created_at: Optional[UtcDatetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
