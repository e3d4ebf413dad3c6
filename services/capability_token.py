"""
Guest capability tokens — the credential inside a patient's magic link.

A capability token is an HS256 JWS naming one document and carrying the
``guest_access`` purpose. It is verified statelessly; the only thing derived
from it for storage is its signature segment, which keys the OTP challenge.
The signing secret belongs to this trust domain alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import jwt

from shared.datetime_utils import utc_now

GUEST_ACCESS_PURPOSE = "guest_access"
_ALGORITHM = "HS256"


class InvalidCapabilityToken(Exception):
    """Malformed, tampered, expired, or wrong-purpose capability token."""


@dataclass(frozen=True)
class VerifiedCapability:
    document_id: str
    token_signature: str
    issued_at: datetime
    expires_at: datetime


def token_signature_of(raw_token: str) -> str:
    """Return the signature segment of a compact JWS."""
    parts = raw_token.split(".")
    if len(parts) != 3 or not parts[2]:
        raise InvalidCapabilityToken("Malformed token")
    return parts[2]


class CapabilityTokenService:
    def __init__(self, secret: str, ttl_seconds: int, app_base_url: str = "") -> None:
        self._secret = secret
        self._ttl = ttl_seconds
        self._app_base_url = app_base_url.rstrip("/")

    def issue(self, document_id: str) -> str:
        now = utc_now()
        claims = {
            "sub": document_id,
            "purpose": GUEST_ACCESS_PURPOSE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._ttl)).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def build_magic_link(self, document_id: str) -> str:
        """Patient-facing URL embedding a fresh capability token."""
        query = urlencode({"token": self.issue(document_id)})
        return f"{self._app_base_url}/guest/access?{query}"

    def verify(self, raw_token: str) -> VerifiedCapability:
        signature = token_signature_of(raw_token)
        try:
            claims = jwt.decode(
                raw_token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidCapabilityToken(str(e)) from e

        if claims.get("purpose") != GUEST_ACCESS_PURPOSE:
            raise InvalidCapabilityToken("Wrong token purpose")
        document_id = claims["sub"]
        if not isinstance(document_id, str) or not document_id:
            raise InvalidCapabilityToken("Missing subject")

        return VerifiedCapability(
            document_id=document_id,
            token_signature=signature,
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )
