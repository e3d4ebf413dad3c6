"""MongoDB adapter for the append-only audit log."""

from __future__ import annotations

from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.audit import AuditEntryDoc
from shared.datetime_utils import utc_now

COLLECTION_NAME = "audit-logs"


class AuditRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def record(self, entry: AuditEntryDoc) -> None:
        if entry.created_at is None:
            entry.created_at = utc_now()
        await self._col.insert_one(entry.to_mongo())
