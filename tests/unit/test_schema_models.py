"""Unit tests for MongoDB document models."""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from schemas.models.audit import PATIENT_ACTOR, AuditAction, AuditEntryDoc
from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.document import DocumentStatus, GuestDocumentDoc
from schemas.models.otp import OtpChallengeDoc


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def oid():
    return ObjectId()


def _challenge(**overrides) -> OtpChallengeDoc:
    data = {
        "token_signature": "sig",
        "code_hash": "$argon2id$v=19$m=65536,t=3,p=4$abc$def",
        "expires_at": now() + timedelta(minutes=10),
    }
    data.update(overrides)
    return OtpChallengeDoc(**data)


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = oid()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(oid())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")


# ── MongoBaseModel ─────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_to_mongo_drops_missing_id(self):
        assert "_id" not in _challenge().to_mongo()

    def test_to_mongo_keeps_id(self):
        o = oid()
        assert "_id" in _challenge(_id=o).to_mongo()


# ── OtpChallengeDoc ───────────────────────────────────────────────────────────

class TestOtpChallengeDoc:
    def test_defaults(self):
        doc = _challenge()
        assert doc.attempts == 0
        assert doc.id is None

    def test_from_mongo_naive_datetime_gets_utc(self):
        raw = {
            "_id": oid(),
            "token_signature": "sig",
            "code_hash": "h",
            "expires_at": datetime(2030, 1, 1, 12, 0),
            "attempts": 2,
        }
        doc = OtpChallengeDoc.from_mongo(raw)
        assert doc.expires_at.tzinfo == timezone.utc
        assert doc.attempts == 2

    def test_negative_attempts_rejected(self):
        with pytest.raises(ValidationError):
            _challenge(attempts=-1)

    @pytest.mark.parametrize(
        "offset, expired",
        [(timedelta(seconds=-1), True), (timedelta(seconds=1), False)],
        ids=["past", "future"],
    )
    def test_is_expired(self, offset, expired):
        current = now()
        doc = _challenge(expires_at=current + offset)
        assert doc.is_expired(current) is expired

    def test_expiry_boundary_not_expired(self):
        current = now()
        assert _challenge(expires_at=current).is_expired(current) is False


# ── GuestDocumentDoc ──────────────────────────────────────────────────────────

class TestGuestDocumentDoc:
    def _raw(self, **overrides):
        data = {
            "_id": "0f6b1c2e-8a8d-4a55-9a43-0e1f3d0b9c11",
            "tenant_id": "tenant-1",
            "status": "SENT",
            "patient_phone": "+237612345789",
            "patient_dob": datetime(1990, 5, 12),
            "file_key": "tenants/tenant-1/2025/result.pdf",
            "uploaded_by": "ignored",
        }
        data.update(overrides)
        return data

    def test_from_mongo(self):
        doc = GuestDocumentDoc.from_mongo(self._raw())
        assert doc.id == "0f6b1c2e-8a8d-4a55-9a43-0e1f3d0b9c11"
        assert doc.status is DocumentStatus.SENT
        assert doc.patient_dob.tzinfo == timezone.utc
        assert not hasattr(doc, "uploaded_by")

    def test_from_mongo_none(self):
        assert GuestDocumentDoc.from_mongo(None) is None

    @pytest.mark.parametrize(
        "status, gone",
        [("UPLOADED", False), ("SENT", False), ("OPENED", False), ("EXPIRED", True)],
    )
    def test_is_gone(self, status, gone):
        assert GuestDocumentDoc.from_mongo(self._raw(status=status)).is_gone is gone

    def test_optional_contact_fields(self):
        doc = GuestDocumentDoc.from_mongo(self._raw(patient_phone=None, patient_dob=None))
        assert doc.patient_phone is None
        assert doc.patient_dob is None

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            GuestDocumentDoc.from_mongo(self._raw(status="ARCHIVED"))


# ── AuditEntryDoc ─────────────────────────────────────────────────────────────

class TestAuditEntryDoc:
    def test_to_mongo_stores_plain_action(self):
        entry = AuditEntryDoc(
            action=AuditAction.VIEW_DOCUMENT,
            tenant_id="tenant-1",
            resource_id="doc-1",
            description="Patient accessed document via 2FA (link + SMS)",
        )
        data = entry.to_mongo()
        assert data["action"] == "VIEW_DOCUMENT"
        assert data["actor_id"] == PATIENT_ACTOR
        assert "_id" not in data
