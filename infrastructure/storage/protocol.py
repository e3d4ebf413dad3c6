"""FileStore protocol — grant issuance and file viewing depend on this, not on
a concrete object store."""

from typing import AsyncIterator, Protocol


class StorageUnavailable(Exception):
    """The object store is unreachable or does not hold the requested object."""


class FileStore(Protocol):
    async def ping(self) -> bool: ...

    async def exists(self, key: str) -> bool: ...

    def iter_chunks(self, key: str) -> AsyncIterator[bytes]: ...
