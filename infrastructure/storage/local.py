"""Filesystem-backed FileStore.

Object keys such as ``tenants/<tenant>/<year>/<uuid>.pdf`` resolve below a
root directory. Keys that would escape the root are rejected.
"""

import asyncio
from pathlib import Path
from typing import AsyncIterator

from infrastructure.storage.protocol import StorageUnavailable
from shared.logging import get_logger

log = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalFileStore:
    def __init__(self, root: str) -> None:
        self._root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root):
            raise StorageUnavailable(f"Key outside storage root: {key!r}")
        return path

    async def ping(self) -> bool:
        """True when the storage root exists as a directory."""
        return await asyncio.to_thread(self._root.is_dir)

    async def exists(self, key: str) -> bool:
        try:
            return await asyncio.to_thread(self._path(key).is_file)
        except OSError as e:
            log.error("storage_exists_failed", file_key=key, error=str(e))
            raise StorageUnavailable(str(e)) from e

    async def iter_chunks(self, key: str) -> AsyncIterator[bytes]:
        path = self._path(key)
        try:
            handle = await asyncio.to_thread(path.open, "rb")
        except OSError as e:
            log.error("storage_open_failed", file_key=key, error=str(e))
            raise StorageUnavailable(str(e)) from e
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()
