"""
Shared fixtures: in-memory collaborators for the guest verification flow.

The fakes honour the same contracts as the MongoDB repositories (conditional
attempt reservation, exclusive consume) and yield to the event loop on every
call so concurrent tests actually interleave.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
from bson import ObjectId

from infrastructure.storage.protocol import StorageUnavailable
from schemas.models.audit import AuditEntryDoc
from schemas.models.document import DocumentStatus, GuestDocumentDoc
from schemas.models.otp import OtpChallengeDoc
from services.capability_token import CapabilityTokenService
from services.guest_verification import GuestAccessPolicy, GuestVerificationService

GUEST_SECRET = "guest-token-secret-for-tests-0123456789abcdef"
GRANT_SECRET = "file-grant-secret-for-tests-0123456789abcdef"


class InMemoryOtpStore:
    def __init__(self) -> None:
        self.records: dict[str, OtpChallengeDoc] = {}

    async def replace(self, token_signature, code_hash, expires_at):
        await asyncio.sleep(0)
        doc = OtpChallengeDoc(
            _id=ObjectId(),
            token_signature=token_signature,
            code_hash=code_hash,
            expires_at=expires_at,
            attempts=0,
            created_at=datetime.now(timezone.utc),
        )
        self.records[token_signature] = doc
        return doc.model_copy()

    async def find(self, token_signature) -> Optional[OtpChallengeDoc]:
        await asyncio.sleep(0)
        doc = self.records.get(token_signature)
        return doc.model_copy() if doc else None

    async def reserve_attempt(self, challenge, max_attempts) -> Optional[int]:
        await asyncio.sleep(0)
        doc = self.records.get(challenge.token_signature)
        if doc is None or doc.id != challenge.id or doc.attempts >= max_attempts:
            return None
        doc.attempts += 1
        return doc.attempts

    async def consume(self, challenge) -> bool:
        await asyncio.sleep(0)
        doc = self.records.get(challenge.token_signature)
        if doc is None or doc.id != challenge.id:
            return False
        del self.records[challenge.token_signature]
        return True


class InMemoryDocuments:
    def __init__(self) -> None:
        self.docs: dict[str, GuestDocumentDoc] = {}
        self.mark_opened_calls = 0

    def add(self, **overrides) -> GuestDocumentDoc:
        base = dict(
            _id="doc-1",
            tenant_id="tenant-1",
            status=DocumentStatus.SENT,
            patient_phone="+237612345789",
            patient_dob=datetime(1990, 5, 12, tzinfo=timezone.utc),
            file_key="tenants/tenant-1/2025/doc-1.pdf",
        )
        base.update(overrides)
        doc = GuestDocumentDoc.model_validate(base)
        self.docs[doc.id] = doc
        return doc

    async def get_by_id(self, document_id):
        await asyncio.sleep(0)
        doc = self.docs.get(document_id)
        return doc.model_copy() if doc else None

    async def mark_opened(self, document_id):
        await asyncio.sleep(0)
        self.mark_opened_calls += 1
        self.docs[document_id].status = DocumentStatus.OPENED


class RecordingAudit:
    def __init__(self) -> None:
        self.entries: list[AuditEntryDoc] = []

    async def record(self, entry):
        self.entries.append(entry)


class RecordingDelivery:
    """Captures dispatched passcodes; ``mode`` simulates gateway trouble."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.mode = "ok"  # ok | reject | raise | hang

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]

    async def send_passcode(self, phone, code):
        self.sent.append((phone, code))
        if self.mode == "reject":
            return False
        if self.mode == "raise":
            raise ConnectionError("gateway down")
        if self.mode == "hang":
            await asyncio.sleep(10)
        return True


class FakeGrantIssuer:
    def __init__(self) -> None:
        self.available = True
        self.issued: list[tuple[str, int]] = []

    async def issue(self, file_key, ttl_seconds):
        if not self.available:
            raise StorageUnavailable("bucket unreachable")
        self.issued.append((file_key, ttl_seconds))
        return f"https://files.test/view?key={file_key}&ttl={ttl_seconds}"


class GuestHarness:
    """Bundle of fakes plus a service wired to them."""

    def __init__(self) -> None:
        self.tokens = CapabilityTokenService(GUEST_SECRET, 172_800, "https://app.test")
        self.store = InMemoryOtpStore()
        self.documents = InMemoryDocuments()
        self.audit = RecordingAudit()
        self.delivery = RecordingDelivery()
        self.grants = FakeGrantIssuer()
        self.service = GuestVerificationService(
            tokens=self.tokens,
            challenges=self.store,
            documents=self.documents,
            delivery=self.delivery,
            grants=self.grants,
            audit=self.audit,
            policy=GuestAccessPolicy(sms_timeout_seconds=0.05),
        )

    def token_for(self, document_id: str = "doc-1") -> str:
        return self.tokens.issue(document_id)

    def signature_of(self, token: str) -> str:
        return token.split(".")[2]


@pytest.fixture
def guest():
    harness = GuestHarness()
    harness.documents.add()
    return harness
