"""Filesystem blob store.

Implements the BlobStore protocol on a local directory for development.
Objects land at ``<base_path>/<bucket>/<key>``; the returned URL is built
from ``base_url`` so a static file server can hand them out.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Union

import aiofiles

from meterly.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class FilesystemBlobStore:
    """Filesystem-based BlobStore.

    Uses aiofiles for non-blocking file I/O operations.
    """

    def __init__(self, base_path: Union[str, Path], base_url: str):
        """Initialize filesystem store.

        Args:
            base_path: Root directory for stored objects.
            base_url: URL prefix under which ``base_path`` is served.
        """
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"FilesystemBlobStore initialized at {self.base_path}")

    def _resolve(self, bucket: str, key: str) -> Path:
        """Resolve bucket/key to a path inside ``base_path``."""
        full_path = (self.base_path / bucket / key.replace("/", os.sep)).resolve()
        if self.base_path.resolve() not in full_path.parents:
            raise StorageError("filesystem", f"Key escapes the storage root: {bucket}/{key}")
        return full_path

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Write the object and return its URL.

        Raises:
            StorageError: If the file cannot be written.
        """
        full_path = self._resolve(bucket, key)
        try:
            await asyncio.to_thread(full_path.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError("filesystem", f"Failed to write {bucket}/{key}: {e}") from e

        logger.debug(f"FilesystemBlobStore: wrote {len(data)} bytes ({content_type}) to {full_path}")
        return f"{self.base_url}/{bucket}/{key}"
