"""Fake blob store for testing."""

from dataclasses import dataclass
from typing import Optional

from meterly.core.exceptions import StorageError


@dataclass
class StoredBlob:
    """An object held by the fake store."""

    bucket: str
    key: str
    data: bytes
    content_type: str


class FakeBlobStore:
    """Test implementation of BlobStore.

    Keeps uploads in memory. ``fail_with`` makes every upload raise, which
    lets tests exercise storage failures.

    Usage:
        blobs = FakeBlobStore()
        url = await blobs.upload("bucket", "invoices/1.pdf", b"%PDF", "application/pdf")
        assert blobs.get("bucket", "invoices/1.pdf").data == b"%PDF"
    """

    def __init__(self, base_url: str = "https://blobs.test") -> None:
        """Initialize with an empty store."""
        self.base_url = base_url.rstrip("/")
        self.blobs: dict[tuple[str, str], StoredBlob] = {}
        self.upload_calls = 0
        self.fail_with: Optional[Exception] = None

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Record the upload and return a deterministic URL."""
        self.upload_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.blobs[(bucket, key)] = StoredBlob(bucket, key, data, content_type)
        return f"{self.base_url}/{bucket}/{key}"

    # Test helpers

    def fail_uploads(self, message: str = "simulated outage") -> None:
        """Make subsequent uploads raise StorageError."""
        self.fail_with = StorageError("fake", message)

    def recover(self) -> None:
        """Let uploads succeed again."""
        self.fail_with = None

    def get(self, bucket: str, key: str) -> Optional[StoredBlob]:
        """Return a stored object, or None."""
        return self.blobs.get((bucket, key))
