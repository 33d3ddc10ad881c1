"""AWS S3 blob store.

Implements the BlobStore protocol for AWS S3 and S3-compatible storage
(MinIO, LocalStack) via ``endpoint_url``.
"""

import logging
from typing import Optional

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from meterly.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class S3BlobStore:
    """S3 implementation of the BlobStore protocol.

    Uses aiobotocore for async S3 operations and the standard AWS credential
    chain (env vars, IAM roles, credential files). The client is created
    lazily and reused until ``close``.
    """

    def __init__(self, region: str, endpoint_url: Optional[str] = None):
        """Initialize the store.

        Args:
            region: AWS region (e.g., "us-east-1").
            endpoint_url: Optional custom endpoint for S3-compatible storage.
        """
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._session = None
        self._client = None

        logger.debug(
            f"S3BlobStore initialized (region={region})"
            f"{f', endpoint={endpoint_url}' if endpoint_url else ''}"
        )

    async def _get_client(self):
        """Lazy-load async S3 client."""
        if self._client is None:
            self._session = get_session()
            self._client = await self._session.create_client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            ).__aenter__()
        return self._client

    async def close(self) -> None:
        """Close async client and release resources."""
        if self._client is not None:
            await self._client.__aexit__(None, None, None)
            self._client = None
            self._session = None

    def object_url(self, bucket: str, key: str) -> str:
        """URL an uploaded object is retrievable from."""
        if self.endpoint_url:
            return f"{self.endpoint_url}/{bucket}/{key}"
        return f"https://{bucket}.s3.amazonaws.com/{key}"

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Put the object and return its URL.

        Raises:
            StorageError: If S3 rejects the write or is unreachable.
        """
        try:
            client = await self._get_client()
            await client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError("s3", f"Failed to upload s3://{bucket}/{key}: {e}") from e

        logger.debug(f"S3BlobStore: uploaded {len(data)} bytes to s3://{bucket}/{key}")
        return self.object_url(bucket, key)
