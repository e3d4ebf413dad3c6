"""
Download grants — short-lived signed URLs for a verified patient's file.

The grant is an HS256 token with the ``file_access`` purpose, signed with a
secret separate from the capability-token secret, and redeemed by
GET /api/auth/guest/view-file.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol
from urllib.parse import urlencode

import jwt

from infrastructure.storage.protocol import FileStore, StorageUnavailable
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

FILE_ACCESS_PURPOSE = "file_access"
VIEW_FILE_PATH = "/api/auth/guest/view-file"
_ALGORITHM = "HS256"


class InvalidGrant(Exception):
    """Malformed, tampered, expired, or wrong-purpose download grant."""


class DownloadGrantIssuer(Protocol):
    async def issue(self, file_key: str, ttl_seconds: int) -> str: ...


class SignedFileGrantIssuer:
    def __init__(self, secret: str, api_base_url: str, file_store: FileStore) -> None:
        self._secret = secret
        self._api_base_url = api_base_url.rstrip("/")
        self._store = file_store

    async def issue(self, file_key: str, ttl_seconds: int) -> str:
        """Sign a grant for *file_key*.

        Raises:
            StorageUnavailable: the store is unreachable or lacks the object.
        """
        if not await self._store.exists(file_key):
            log.error("grant_object_missing", file_key=file_key)
            raise StorageUnavailable(f"Object not found: {file_key!r}")

        now = utc_now()
        grant = jwt.encode(
            {
                "sub": file_key,
                "purpose": FILE_ACCESS_PURPOSE,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            },
            self._secret,
            algorithm=_ALGORITHM,
        )
        return f"{self._api_base_url}{VIEW_FILE_PATH}?{urlencode({'token': grant})}"

    def redeem(self, grant: str) -> str:
        """Return the file key a valid grant names."""
        try:
            claims = jwt.decode(
                grant,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidGrant(str(e)) from e
        if claims.get("purpose") != FILE_ACCESS_PURPOSE:
            raise InvalidGrant("Wrong grant purpose")
        return claims["sub"]
