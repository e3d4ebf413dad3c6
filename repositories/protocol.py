"""Persistence protocols — the guest verification service depends on these,
not on the MongoDB implementations."""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.audit import AuditEntryDoc
from schemas.models.document import GuestDocumentDoc
from schemas.models.otp import OtpChallengeDoc


class OtpChallengeStore(Protocol):
    async def replace(
        self, token_signature: str, code_hash: str, expires_at: datetime
    ) -> OtpChallengeDoc: ...

    async def find(self, token_signature: str) -> Optional[OtpChallengeDoc]: ...

    async def reserve_attempt(
        self, challenge: OtpChallengeDoc, max_attempts: int
    ) -> Optional[int]: ...

    async def consume(self, challenge: OtpChallengeDoc) -> bool: ...


class DocumentDirectory(Protocol):
    async def get_by_id(self, document_id: str) -> Optional[GuestDocumentDoc]: ...

    async def mark_opened(self, document_id: str) -> None: ...


class AuditSink(Protocol):
    async def record(self, entry: AuditEntryDoc) -> None: ...
