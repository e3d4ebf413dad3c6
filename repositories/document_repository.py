"""
MongoDB adapter for the documents collection, limited to what the guest
access flow may touch: read by id, and the one-way transition to OPENED.
"""

from __future__ import annotations

from typing import Optional

from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.document import DocumentStatus, GuestDocumentDoc
from shared.datetime_utils import utc_now
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "documents"

_PROJECTION = {
    "tenant_id": 1,
    "status": 1,
    "patient_phone": 1,
    "patient_dob": 1,
    "file_key": 1,
    "opened_at": 1,
}


class DocumentRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def get_by_id(self, document_id: str) -> Optional[GuestDocumentDoc]:
        raw = await self._col.find_one({"_id": document_id}, _PROJECTION)
        return GuestDocumentDoc.from_mongo(raw)

    async def mark_opened(self, document_id: str) -> None:
        # Conditional so a repeat open keeps the first opened_at
        result = await self._col.update_one(
            {"_id": document_id, "status": {"$ne": DocumentStatus.OPENED.value}},
            {
                "$set": {
                    "status": DocumentStatus.OPENED.value,
                    "opened_at": utc_now(),
                }
            },
        )
        if result.modified_count:
            log.info("document_opened", document_id=document_id)
