"""Blob store adapters."""

from meterly.adapters.blob_store.filesystem import FilesystemBlobStore
from meterly.adapters.blob_store.s3 import S3BlobStore

__all__ = ["FilesystemBlobStore", "S3BlobStore"]
