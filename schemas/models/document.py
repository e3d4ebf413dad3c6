"""
Guest-facing view of a patient result document.

Maps to the `documents` MongoDB collection, which is owned by the results
subsystem. Only the fields the guest-access flow reads are modelled; extra
fields are ignored. Documents are keyed by a UUID string, not an ObjectId.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import UtcDatetime


class DocumentStatus(str, Enum):
    UPLOADED = "UPLOADED"
    SENT = "SENT"
    OPENED = "OPENED"
    EXPIRED = "EXPIRED"


class GuestDocumentDoc(BaseModel):
    """Read model for the `documents` collection."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    tenant_id: str
    status: DocumentStatus
    patient_phone: Optional[str] = None
    patient_dob: Optional[UtcDatetime] = None
    file_key: str
    opened_at: Optional[UtcDatetime] = None

    @property
    def is_gone(self) -> bool:
        return self.status == DocumentStatus.EXPIRED

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["GuestDocumentDoc"]:
        if data is None:
            return None
        return cls.model_validate(data)
