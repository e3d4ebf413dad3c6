"""
Audit log entry document model.

Maps to the append-only `audit-logs` MongoDB collection.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import ConfigDict

from schemas.models.base import MongoBaseModel, UtcDatetime

PATIENT_ACTOR = "PATIENT"


class AuditAction(str, Enum):
    VIEW_DOCUMENT = "VIEW_DOCUMENT"


class AuditEntryDoc(MongoBaseModel):
    """Document model for the `audit-logs` collection."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    action: AuditAction
    tenant_id: str
    resource_id: str
    actor_id: str = PATIENT_ACTOR
    description: str
    created_at: Optional[UtcDatetime] = None
