"""
Guest document-access verification.

Takes the capability token from a patient's magic link through:

    challenge ─► OTP pending ─► verified | locked out | expired
                      └────► DOB fallback ─► verified | locked out

The service keeps no state between calls; progress lives in the OTP challenge
record and the document status. Every operation returns either a success
value or a GuestAccessFailure. Nothing in the expected failure set is raised;
the HTTP layer maps failure kinds to responses.

Attempts are pooled: the OTP path and the date-of-birth path count against the
same challenge record, capped at 3 and 5 respectively.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional, Union

from infrastructure.sms.protocol import SecretDeliveryPort
from infrastructure.storage.protocol import StorageUnavailable
from repositories.protocol import AuditSink, DocumentDirectory, OtpChallengeStore
from schemas.models.audit import PATIENT_ACTOR, AuditAction, AuditEntryDoc
from schemas.models.document import DocumentStatus, GuestDocumentDoc
from schemas.models.otp import OtpChallengeDoc
from services.capability_token import (
    CapabilityTokenService,
    InvalidCapabilityToken,
    VerifiedCapability,
)
from services.download_grant import DownloadGrantIssuer
from shared.crypto import hash_password, verify_password
from shared.datetime_utils import same_calendar_date, utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger
from shared.masking import mask_phone

log = get_logger(__name__)


class FailureKind(str, Enum):
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"
    NO_CHALLENGE = "no_challenge"
    NO_SESSION = "no_session"
    DOCUMENT_GONE = "document_gone"
    CHALLENGE_EXPIRED = "challenge_expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    INVALID_CODE = "invalid_code"
    INVALID_DOB = "invalid_dob"
    FALLBACK_UNAVAILABLE = "fallback_unavailable"
    GRANT_ISSUANCE_FAILED = "grant_issuance_failed"


class VerificationMethod(str, Enum):
    OTP = "otp"
    DOB = "dob"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    RETRY_SUGGESTED = "retry_suggested"


_AUDIT_DESCRIPTIONS = {
    VerificationMethod.OTP: "Patient accessed document via 2FA (link + SMS)",
    VerificationMethod.DOB: "Patient accessed document via date-of-birth fallback",
}


@dataclass(frozen=True)
class GuestAccessFailure:
    kind: FailureKind


@dataclass(frozen=True)
class ChallengeIssued:
    masked_phone: str
    delivery_status: DeliveryStatus


@dataclass(frozen=True)
class AccessGranted:
    download_url: str
    method: VerificationMethod


ChallengeResult = Union[ChallengeIssued, GuestAccessFailure]
VerificationResult = Union[AccessGranted, GuestAccessFailure]


@dataclass(frozen=True)
class GuestAccessPolicy:
    otp_ttl_seconds: int = 600
    grant_ttl_seconds: int = 300
    otp_max_attempts: int = 3
    dob_max_attempts: int = 5
    sms_timeout_seconds: float = 5.0


class GuestVerificationService:
    def __init__(
        self,
        tokens: CapabilityTokenService,
        challenges: OtpChallengeStore,
        documents: DocumentDirectory,
        delivery: SecretDeliveryPort,
        grants: DownloadGrantIssuer,
        audit: AuditSink,
        policy: Optional[GuestAccessPolicy] = None,
    ) -> None:
        self._tokens = tokens
        self._challenges = challenges
        self._documents = documents
        self._delivery = delivery
        self._grants = grants
        self._audit = audit
        self._policy = policy or GuestAccessPolicy()

    # ── Operations ────────────────────────────────────────────────────────────

    async def challenge(self, raw_token: str) -> ChallengeResult:
        """Issue a fresh passcode for the document named by *raw_token*."""
        opened = await self._open(raw_token)
        if isinstance(opened, GuestAccessFailure):
            return opened
        capability, document = opened

        code = generate_otp_code()
        expires_at = utc_now() + timedelta(seconds=self._policy.otp_ttl_seconds)
        challenge = await self._challenges.replace(
            capability.token_signature, await asyncio.to_thread(hash_password, code), expires_at
        )
        log.info(
            "otp_challenge_issued",
            document_id=document.id,
            tenant_id=document.tenant_id,
            challenge_id=str(challenge.id),
        )

        delivered = await self._dispatch(document, code)
        return ChallengeIssued(
            masked_phone=mask_phone(document.patient_phone),
            delivery_status=DeliveryStatus.SENT if delivered else DeliveryStatus.RETRY_SUGGESTED,
        )

    async def verify_otp(self, raw_token: str, code: str) -> VerificationResult:
        """Check *code* against the live challenge for *raw_token*."""
        opened = await self._open(raw_token)
        if isinstance(opened, GuestAccessFailure):
            return opened
        capability, document = opened

        challenge = await self._challenges.find(capability.token_signature)
        if challenge is None:
            return self._fail(FailureKind.NO_CHALLENGE, document)

        claimed = await self._claim_attempt(
            challenge, self._policy.otp_max_attempts, document, FailureKind.NO_CHALLENGE
        )
        if claimed is not None:
            return claimed

        if not await asyncio.to_thread(verify_password, code, challenge.code_hash):
            return self._fail(FailureKind.INVALID_CODE, document)

        return await self._grant_access(challenge, document, VerificationMethod.OTP)

    async def verify_dob_fallback(self, raw_token: str, dob: str) -> VerificationResult:
        """Check a date of birth when the patient cannot receive the SMS.

        Only reachable once a challenge has been issued for the token; the
        challenge record supplies the attempt counter and expiry.
        """
        opened = await self._open(raw_token)
        if isinstance(opened, GuestAccessFailure):
            return opened
        capability, document = opened

        challenge = await self._challenges.find(capability.token_signature)
        if challenge is None:
            return self._fail(FailureKind.NO_SESSION, document)
        if challenge.is_expired(utc_now()):
            return self._fail(FailureKind.CHALLENGE_EXPIRED, document)
        if document.patient_dob is None:
            return self._fail(FailureKind.FALLBACK_UNAVAILABLE, document)

        claimed = await self._claim_attempt(
            challenge, self._policy.dob_max_attempts, document, FailureKind.NO_SESSION
        )
        if claimed is not None:
            return claimed

        if not same_calendar_date(dob, document.patient_dob):
            return self._fail(FailureKind.INVALID_DOB, document)

        return await self._grant_access(challenge, document, VerificationMethod.DOB)

    # ── Steps ─────────────────────────────────────────────────────────────────

    async def _open(
        self, raw_token: str
    ) -> Union[tuple[VerifiedCapability, GuestDocumentDoc], GuestAccessFailure]:
        try:
            capability = self._tokens.verify(raw_token)
        except InvalidCapabilityToken as e:
            log.warning("guest_token_rejected", reason=str(e))
            return GuestAccessFailure(FailureKind.INVALID_TOKEN)

        document = await self._documents.get_by_id(capability.document_id)
        if document is None:
            log.warning("guest_document_missing", document_id=capability.document_id)
            return GuestAccessFailure(FailureKind.NOT_FOUND)
        if document.is_gone:
            return self._fail(FailureKind.DOCUMENT_GONE, document)
        return capability, document

    async def _claim_attempt(
        self,
        challenge: OtpChallengeDoc,
        max_attempts: int,
        document: GuestDocumentDoc,
        missing_kind: FailureKind,
    ) -> Optional[GuestAccessFailure]:
        """Count one attempt before comparing secrets.

        The attempt is reserved up front so concurrent guesses cannot all pass
        the cap check and then compare. A failed comparison leaves the
        reservation in place, which is the failed-attempt increment.
        """
        if challenge.is_expired(utc_now()):
            return self._fail(FailureKind.CHALLENGE_EXPIRED, document)
        if challenge.attempts >= max_attempts:
            return self._fail(FailureKind.TOO_MANY_ATTEMPTS, document)

        reserved = await self._challenges.reserve_attempt(challenge, max_attempts)
        if reserved is not None:
            return None

        # Lost a race: the record was consumed, replaced, or capped meanwhile
        current = await self._challenges.find(challenge.token_signature)
        if current is None or current.id != challenge.id:
            return self._fail(missing_kind, document)
        return self._fail(FailureKind.TOO_MANY_ATTEMPTS, document)

    async def _grant_access(
        self,
        challenge: OtpChallengeDoc,
        document: GuestDocumentDoc,
        method: VerificationMethod,
    ) -> VerificationResult:
        # Consumption comes first: of two racing correct verifiers only the
        # one that deletes the record proceeds.
        if not await self._challenges.consume(challenge):
            return self._fail(FailureKind.NO_CHALLENGE, document)

        await self._audit.record(
            AuditEntryDoc(
                action=AuditAction.VIEW_DOCUMENT,
                tenant_id=document.tenant_id,
                resource_id=document.id,
                actor_id=PATIENT_ACTOR,
                description=_AUDIT_DESCRIPTIONS[method],
            )
        )
        if document.status != DocumentStatus.OPENED:
            await self._documents.mark_opened(document.id)

        try:
            url = await self._grants.issue(document.file_key, self._policy.grant_ttl_seconds)
        except StorageUnavailable as e:
            log.error(
                "download_grant_failed",
                document_id=document.id,
                error=str(e),
            )
            return GuestAccessFailure(FailureKind.GRANT_ISSUANCE_FAILED)

        log.info(
            "guest_access_granted",
            document_id=document.id,
            tenant_id=document.tenant_id,
            method=method.value,
        )
        return AccessGranted(download_url=url, method=method)

    async def _dispatch(self, document: GuestDocumentDoc, code: str) -> bool:
        if not document.patient_phone:
            log.warning("otp_dispatch_skipped", document_id=document.id, reason="no_phone")
            return False
        try:
            delivered = await asyncio.wait_for(
                self._delivery.send_passcode(document.patient_phone, code),
                timeout=self._policy.sms_timeout_seconds,
            )
        except asyncio.TimeoutError:
            log.error("otp_dispatch_timeout", document_id=document.id)
            return False
        except Exception as e:
            # Delivery is best-effort; the challenge stays valid for a resend
            log.error(
                "otp_dispatch_error",
                document_id=document.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        if not delivered:
            log.warning("otp_dispatch_failed", document_id=document.id)
        return delivered

    def _fail(self, kind: FailureKind, document: GuestDocumentDoc) -> GuestAccessFailure:
        log.warning(
            "guest_verification_failed",
            reason=kind.value,
            document_id=document.id,
            tenant_id=document.tenant_id,
        )
        return GuestAccessFailure(kind)
