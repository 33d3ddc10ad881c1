"""BlobStore protocol for rendered artifacts."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BlobStore(Protocol):
    """Durable object storage returning retrievable URLs.

    Implementations:
    - S3BlobStore: adapters/blob_store/s3.py
    - FilesystemBlobStore: adapters/blob_store/filesystem.py (local dev)
    - FakeBlobStore: adapters/blob_store/fake.py (tests)
    """

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` durably and return a URL it can be retrieved from.

        Raises:
            StorageError: If the object could not be stored.
        """
        ...
