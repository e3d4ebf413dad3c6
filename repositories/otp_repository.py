"""
MongoDB store for one-time passcode challenges.

One live challenge per token signature, enforced by a unique index. Attempt
accounting is a conditional ``$inc`` so concurrent verifiers can never push the
counter past the cap, and consumption is a single ``delete_one`` whose
``deleted_count`` tells exactly one caller that it won.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from schemas.models.otp import OtpChallengeDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "otp-challenges"

# Expired challenges linger this long so callers still see "expired" rather
# than "not found" before the TTL monitor purges them.
EXPIRED_RETENTION_SECONDS = 3600

REPLACE_ATTEMPTS = 3


class OtpRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("token_signature", ASCENDING)],
            unique=True,
            name="token_signature_unique",
        )
        await self._col.create_index(
            [("expires_at", ASCENDING)],
            expireAfterSeconds=EXPIRED_RETENTION_SECONDS,
            name="expires_at_ttl",
        )

    async def replace(
        self, token_signature: str, code_hash: str, expires_at: datetime
    ) -> OtpChallengeDoc:
        """Drop any challenge for *token_signature* and insert a fresh one.

        A concurrent replace for the same signature can land its insert between
        our delete and insert; the unique index then rejects ours and we delete
        and insert again, so the most recent caller's challenge survives.
        """
        doc = OtpChallengeDoc(
            token_signature=token_signature,
            code_hash=code_hash,
            expires_at=expires_at,
            attempts=0,
            created_at=utc_now(),
        )
        for attempt in range(1, REPLACE_ATTEMPTS + 1):
            deleted = await self._col.delete_many({"token_signature": token_signature})
            try:
                result = await self._col.insert_one(doc.to_mongo())
            except DuplicateKeyError:
                if attempt == REPLACE_ATTEMPTS:
                    raise
                log.info("otp_challenge_replace_contended", attempt=attempt)
                continue
            doc.id = result.inserted_id
            if deleted.deleted_count:
                log.info(
                    "otp_challenge_superseded",
                    challenge_id=str(result.inserted_id),
                    superseded=deleted.deleted_count,
                )
            return doc

    async def find(self, token_signature: str) -> Optional[OtpChallengeDoc]:
        raw = await self._col.find_one({"token_signature": token_signature})
        return OtpChallengeDoc.from_mongo(raw)

    async def reserve_attempt(
        self, challenge: OtpChallengeDoc, max_attempts: int
    ) -> Optional[int]:
        """Atomically count one verification attempt against *challenge*.

        Returns:
            The new attempt count, or ``None`` when the challenge is gone or
            already at *max_attempts*.
        """
        updated = await self._col.find_one_and_update(
            {"_id": challenge.id, "attempts": {"$lt": max_attempts}},
            {"$inc": {"attempts": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            return None
        return updated["attempts"]

    async def consume(self, challenge: OtpChallengeDoc) -> bool:
        """Delete *challenge*; True only for the caller that removed it."""
        result = await self._col.delete_one({"_id": challenge.id})
        return result.deleted_count == 1
